"""Electrochemical relationships used by the battery model"""
from typing import Sequence, Union

import numpy as np

Number = Union[float, np.ndarray]


def redlich_kister_potential(x: Number, u0: float, coeffs: Sequence[float], tb: Number, r: float, f: float) -> Number:
    r"""Open-circuit potential of an electrode from a Redlich-Kister expansion

    .. math::

        U = U_0 + \sum_k \frac{A_k}{F} \left[(2x-1)^{k+1} - 2kx(1-x)(2x-1)^{k-1}\right]
            + \frac{RT}{F}\ln\frac{1-x}{x}

    The composition must lie strictly between 0 and 1; callers check that first.

    Args:
        x: Mole fraction at the electrode surface
        u0: Reference potential. Units: V
        coeffs: Expansion coefficients, starting with order 0
        tb: Temperature. Units: K
        r: Gas constant
        f: Faraday's constant
    Returns:
        Equilibrium potential. Units: V
    """
    y = 2 * x - 1
    potential = u0 + coeffs[0] * y / f
    for k, a in enumerate(coeffs[1:], start=1):
        if a == 0:
            continue
        potential = potential + a * (y ** (k + 1) - 2 * k * x * (1 - x) * y ** (k - 1)) / f
    return potential + r * tb * np.log((1 - x) / x) / f


def exchange_current_density(k: float, x: Number, alpha: float) -> Number:
    r"""Butler-Volmer exchange current density, :math:`k x^\alpha (1-x)^\alpha`"""
    return k * x ** alpha * (1 - x) ** alpha


def surface_overpotential(j: Number, j0: Number, tb: Number, r: float, f: float, alpha: float) -> Number:
    """Equilibrium overpotential of the Butler-Volmer equation for a current density

    Args:
        j: Current density
        j0: Exchange current density
        tb: Temperature. Units: K
        r: Gas constant
        f: Faraday's constant
        alpha: Transfer coefficient
    Returns:
        Overpotential. Units: V
    """
    return r * tb * np.arcsinh(0.5 * j / j0) / (f * alpha)

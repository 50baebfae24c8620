"""Physical constants of the electrochemical battery model"""
from typing import Tuple

from pydantic import BaseModel, ConfigDict, Field

# Redlich-Kister expansion coefficients for the open-circuit potential of each electrode
DEFAULT_AP = (
    -31593.7, 0.106747, 24606.4, -78561.9, 13317.9, 307387., 84916.1,
    -1.07469e+06, 2285.04, 990894., 283920., -161513., -469218.
)
DEFAULT_AN = (86.19,) + (0.,) * 12


class BatteryParameters(BaseModel):
    """Parameters of a lithium-ion cell

    All charges follow from the amount of mobile lithium, :attr:`q_mobile`.
    Build a complete set with :meth:`from_q_mobile` and replace the set as a whole to recalibrate a model;
    instances are immutable.
    """
    model_config = ConfigDict(frozen=True, use_attribute_docstrings=True)

    q_mobile: float = Field(gt=0)
    """Amount of mobile charge. Units: C"""

    # Mole fraction limits
    xn_max: float = 0.6
    """Maximum mole fraction at the negative electrode"""
    xn_min: float = 0.
    """Minimum mole fraction at the negative electrode"""
    xp_max: float = 1.
    """Maximum mole fraction at the positive electrode"""
    xp_min: float = 0.4
    """Minimum mole fraction at the positive electrode. Note xn + xp = 1"""
    q_max: float
    """Total charge held by both electrodes. Units: C"""

    ro: float = Field(0.117215, ge=0)
    """Lumped ohmic resistance of current collectors, electrolyte and solid phases. Units: Ohm"""

    # Constants of nature
    r: float = 8.3144621
    """Universal gas constant. Units: J/K/mol"""
    f: float = 96487.
    """Faraday's constant. Units: C/mol"""

    # Li-ion parameters
    alpha: float = 0.5
    """Anodic/cathodic electrochemical transfer coefficient"""
    sn: float = 0.000437545
    """Surface area of the negative electrode"""
    sp: float = 0.00030962
    """Surface area of the positive electrode"""
    kn: float = 2120.96
    """Lumped Butler-Volmer rate constant, negative electrode"""
    kp: float = 248898.
    """Lumped Butler-Volmer rate constant, positive electrode"""
    vol: float = 2e-5
    """Interior volume of each electrode (half the total cell volume)"""
    vol_s_fraction: float = 0.1
    """Fraction of the electrode volume occupied by the surface"""
    vol_s: float
    """Surface volume of each electrode"""
    vol_b: float
    """Bulk volume of each electrode"""

    # Charges
    qp_min: float
    qp_max: float
    qps_min: float
    qpb_min: float
    qps_max: float
    qpb_max: float
    qn_min: float
    qn_max: float
    qns_max: float
    qnb_max: float
    qns_min: float
    qnb_min: float
    qs_max: float
    """Maximum charge at the surface of either electrode. Units: C"""
    qb_max: float
    """Maximum charge in the bulk of either electrode. Units: C"""

    # Time constants
    t_diffusion: float = Field(7e6, gt=0)
    """Diffusion time constant between bulk and surface. Units: s"""
    to: float = Field(6.08671, gt=0)
    """Time constant of the ohmic overpotential. Units: s"""
    tsn: float = Field(1.00138e3, gt=0)
    """Time constant of the surface overpotential, negative electrode. Units: s"""
    tsp: float = Field(46.4311, gt=0)
    """Time constant of the surface overpotential, positive electrode. Units: s"""

    # Open-circuit potentials
    u0p: float = 4.03
    """Reference potential of the positive electrode. Units: V"""
    ap: Tuple[float, ...] = DEFAULT_AP
    """Redlich-Kister coefficients of the positive electrode"""
    u0n: float = 0.01
    """Reference potential of the negative electrode. Units: V"""
    an: Tuple[float, ...] = DEFAULT_AN
    """Redlich-Kister coefficients of the negative electrode"""

    v_eod: float = Field(3.2, gt=0)
    """Terminal voltage which marks the end of discharge. Units: V"""

    @classmethod
    def from_q_mobile(cls, q_mobile: float = 7600., **kwargs) -> 'BatteryParameters':
        """Derive a full set of parameters from the amount of mobile charge

        Args:
            q_mobile: Amount of mobile charge. Units: C
            kwargs: Values for any other independent parameters (e.g., ``ro``, ``v_eod``)
        Returns:
            Parameter set
        """

        xn_max = kwargs.pop('xn_max', 0.6)
        xn_min = kwargs.pop('xn_min', 0.)
        xp_max = kwargs.pop('xp_max', 1.)
        xp_min = kwargs.pop('xp_min', 0.4)
        vol = kwargs.pop('vol', 2e-5)
        vol_s_fraction = kwargs.pop('vol_s_fraction', 0.1)
        q_max = q_mobile / (xn_max - xn_min)

        # Each electrode has the same volume and the same surface/bulk split
        vol_s = vol_s_fraction * vol
        vol_b = vol - vol_s

        # Charges (Li ions)
        qp_min = q_max * xp_min
        qp_max = q_max * xp_max
        qn_min = q_max * xn_min
        qn_max = q_max * xn_max

        return cls(
            q_mobile=q_mobile, xn_max=xn_max, xn_min=xn_min, xp_max=xp_max, xp_min=xp_min, q_max=q_max,
            vol=vol, vol_s_fraction=vol_s_fraction, vol_s=vol_s, vol_b=vol_b,
            qp_min=qp_min, qp_max=qp_max,
            qps_min=qp_min * vol_s / vol, qpb_min=qp_min * vol_b / vol,
            qps_max=qp_max * vol_s / vol, qpb_max=qp_max * vol_b / vol,
            qn_min=qn_min, qn_max=qn_max,
            qns_min=qn_min * vol_s / vol, qnb_min=qn_min * vol_b / vol,
            qns_max=qn_max * vol_s / vol, qnb_max=qn_max * vol_b / vol,
            qs_max=q_max * vol_s / vol, qb_max=q_max * vol_b / vol,
            **kwargs
        )

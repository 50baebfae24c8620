"""Electrochemical model of a lithium-ion battery

The model tracks the lithium held at the surface and in the bulk of each electrode,
the ohmic and surface overpotentials, and the cell temperature.
Terminal voltage is the difference of the electrode open-circuit potentials,
each given by a Redlich-Kister expansion, less the overpotentials.
"""
from typing import Optional, Tuple
import logging

import numpy as np
from pydantic import ValidationError

from atropos.config import ConfigMap, get_float
from atropos.exceptions import ConfigurationError, RuntimeInputError
from atropos.models.base import PrognosticsModel, check_length, check_open_interval
from atropos.registry import MODELS
from .parameters import BatteryParameters
from .state import BatteryStates, BatteryInputs, BatteryOutputs, BatteryPredictedOutputs
from .utils import redlich_kister_potential, exchange_current_density, surface_overpotential

__all__ = ['BatteryModel', 'BatteryParameters', 'BatteryStates', 'BatteryInputs', 'BatteryOutputs',
           'BatteryPredictedOutputs']

logger = logging.getLogger(__name__)

Q_MOBILE_KEY = 'Battery.qMobile'
RO_KEY = 'Battery.Ro'
VEOD_KEY = 'Battery.VEOD'


class BatteryModel(PrognosticsModel):
    """
    Lithium-ion battery model, which predicts the end of discharge (EOD).

    The input is the power drawn from the cell.
    The current needed to compute the state derivatives is the power divided by the terminal voltage
    of the state at the start of the step, which resolves the dependence between current and voltage explicitly.

    Args:
        q_mobile: Amount of mobile charge. Units: C
        ro: Ohmic resistance. Units: Ohm. Uses the default of :class:`BatteryParameters` if not provided
        v_eod: End-of-discharge voltage. Units: V. Uses the default of :class:`BatteryParameters` if not provided
    """

    states = BatteryStates
    inputs = BatteryInputs
    outputs = BatteryOutputs
    predicted_outputs = BatteryPredictedOutputs

    parameters: BatteryParameters
    """Physical constants of the cell"""

    search_step: float = 1e-4
    """Spacing between the mole fractions evaluated by :meth:`initialize`"""

    def __init__(self, q_mobile: float = 7600., ro: Optional[float] = None, v_eod: Optional[float] = None):
        self.set_parameters(q_mobile)
        overrides = dict((k, v) for k, v in [('ro', ro), ('v_eod', v_eod)] if v is not None)
        if len(overrides) > 0:
            self.parameters = BatteryParameters.from_q_mobile(q_mobile, **overrides)

    @classmethod
    def from_config(cls, config: ConfigMap) -> 'BatteryModel':
        """Create a model using the ``Battery.*`` keys of a configuration map

        Args:
            config: Configuration map. Keys ``Battery.qMobile``, ``Battery.Ro``, ``Battery.VEOD`` are optional
        Returns:
            A battery model
        """
        q_mobile = get_float(config, Q_MOBILE_KEY, 7600., minimum=0., strict=True)
        ro = get_float(config, RO_KEY, minimum=0.)
        v_eod = get_float(config, VEOD_KEY, minimum=0., strict=True)
        try:
            return cls(q_mobile=q_mobile, ro=ro, v_eod=v_eod)
        except ValidationError as exc:
            raise ConfigurationError(f'Invalid battery configuration: {exc}') from exc

    def set_parameters(self, calibration: float = 7600.):
        """Derive all parameters from the amount of mobile charge

        Any ohmic resistance or end-of-discharge voltage set previously returns to its default.

        Args:
            calibration: Amount of mobile charge. Units: C
        """
        self.parameters = BatteryParameters.from_q_mobile(calibration)
        logger.debug(f'Set battery parameters with q_mobile={calibration}')

    @property
    def process_noise(self) -> np.ndarray:
        """Default variance of the process noise for each state"""
        return np.array([1e-10, 1e-10, 1e-10, 1e-10, 1e-3, 1e-3, 1e-3, 1e-3])

    @property
    def sensor_noise(self) -> np.ndarray:
        """Default variance of the sensor noise for each output"""
        return np.array([1e-2, 1e-3])

    def fully_charged_state(self, temperature: float = 292.1) -> np.ndarray:
        """Make the state of a fully-charged cell at rest

        Args:
            temperature: Cell temperature. Units: K
        Returns:
            State vector
        """
        p = self.parameters
        x = self.zero_states()
        x[BatteryStates.tb] = temperature
        x[BatteryStates.qnb] = p.qnb_max
        x[BatteryStates.qns] = p.qns_max
        x[BatteryStates.qpb] = p.qpb_min
        x[BatteryStates.qps] = p.qps_min
        return x

    def _electrode_potentials(self, tb: np.ndarray, xn_s: np.ndarray, xp_s: np.ndarray) \
            -> Tuple[np.ndarray, np.ndarray]:
        """Open-circuit potential of the negative and positive electrodes"""
        p = self.parameters
        check_open_interval('Surface mole fraction of the negative electrode', xn_s)
        check_open_interval('Surface mole fraction of the positive electrode', xp_s)
        ven = redlich_kister_potential(xn_s, p.u0n, p.an, tb, p.r, p.f)
        vep = redlich_kister_potential(xp_s, p.u0p, p.ap, tb, p.r, p.f)
        return ven, vep

    def _terminal_voltage(self, x: np.ndarray) -> np.ndarray:
        """Terminal voltage of a state, without sensor noise"""
        p = self.parameters
        s = BatteryStates
        ven, vep = self._electrode_potentials(x[..., s.tb], x[..., s.qns] / p.qs_max, x[..., s.qps] / p.qs_max)
        return vep - ven - x[..., s.vo] - x[..., s.vsn] - x[..., s.vsp]

    def state_eqn(self, t: float, x: np.ndarray, u: np.ndarray, n: np.ndarray, dt: float):
        check_length('state', x, self.num_states)
        check_length('input', u, self.num_inputs)
        check_length('process noise', n, self.num_states)

        p = self.parameters
        s = BatteryStates
        tb = x[..., s.tb]
        qnb, qns = x[..., s.qnb], x[..., s.qns]
        qpb, qps = x[..., s.qpb], x[..., s.qps]
        power = u[..., BatteryInputs.p]

        # Concentrations and diffusion between bulk and surface
        cn_bulk = qnb / p.vol_b
        cn_surface = qns / p.vol_s
        cp_bulk = qpb / p.vol_b
        cp_surface = qps / p.vol_s
        qdot_diffusion_n = (cn_bulk - cn_surface) / p.t_diffusion
        qdot_diffusion_p = (cp_bulk - cp_surface) / p.t_diffusion

        # Current from the voltage at the start of the step
        voltage = self._terminal_voltage(x)
        i = power / voltage

        # Kinetic overpotentials. The exchange current of the negative electrode uses its own
        #  copy of the surface mole fraction and the positive electrode one is normalized by the bulk capacity
        xs_n = qns / p.qs_max
        xs_p = qps / p.qb_max
        check_open_interval('Exchange mole fraction of the negative electrode', xs_n)
        check_open_interval('Exchange mole fraction of the positive electrode', xs_p)
        jn0 = exchange_current_density(p.kn, xs_n, p.alpha)
        jp0 = exchange_current_density(p.kp, xs_p, p.alpha)
        vsn_nominal = surface_overpotential(i / p.sn, jn0, tb, p.r, p.f, p.alpha)
        vsp_nominal = surface_overpotential(i / p.sp, jp0, tb, p.r, p.f, p.alpha)
        vo_nominal = i * p.ro

        # Assemble the derivatives
        dxdt = np.zeros(np.shape(x))
        dxdt[..., s.tb] = 0.
        dxdt[..., s.vo] = (vo_nominal - x[..., s.vo]) / p.to
        dxdt[..., s.vsn] = (vsn_nominal - x[..., s.vsn]) / p.tsn
        dxdt[..., s.vsp] = (vsp_nominal - x[..., s.vsp]) / p.tsp
        dxdt[..., s.qnb] = -qdot_diffusion_n
        dxdt[..., s.qns] = qdot_diffusion_n - i
        dxdt[..., s.qpb] = -qdot_diffusion_p
        dxdt[..., s.qps] = qdot_diffusion_p + i

        x += (dxdt + n) * dt

    def output_eqn(self, t: float, x: np.ndarray, u: np.ndarray, n: np.ndarray, z: np.ndarray):
        check_length('state', x, self.num_states)
        check_length('sensor noise', n, self.num_outputs)
        check_length('output', z, self.num_outputs)

        z[..., BatteryOutputs.tbm] = x[..., BatteryStates.tb] - 273.15
        z[..., BatteryOutputs.vm] = self._terminal_voltage(x)
        z += n

    def threshold_eqn(self, t: float, x: np.ndarray, u: np.ndarray):
        x = np.asarray(x)
        z = self.zero_outputs(*x.shape[:-1])
        self.output_eqn(t, x, u, np.zeros(self.num_outputs), z)
        reached = z[..., BatteryOutputs.vm] <= self.parameters.v_eod
        return bool(reached) if x.ndim == 1 else reached

    def predicted_output_eqn(self, t: float, x: np.ndarray, u: np.ndarray, z: np.ndarray):
        check_length('predicted output', z, self.num_predicted_outputs)
        z[..., BatteryPredictedOutputs.soc] = (x[..., BatteryStates.qns] + x[..., BatteryStates.qnb]) \
            / self.parameters.qn_max

    def initialize(self, x: np.ndarray, u: np.ndarray, z: np.ndarray):
        """Build the state of a cell with no concentration gradients from its temperature, voltage and load

        Searches from fully charged to fully discharged for the first mole fraction whose predicted
        voltage is at or below the observed voltage, which assumes voltage falls monotonically with discharge.
        The most-discharged candidate is used when no point matches.

        Args:
            x: Array in which to write the state
            u: Power drawn when the observation was made
            z: Observed temperature and voltage
        """
        check_length('state', x, self.num_states)
        u = np.asarray(u, dtype=float)
        z = np.asarray(z, dtype=float)
        p = self.parameters
        s = BatteryStates

        tb = z[BatteryOutputs.tbm] + 273.15
        voltage = z[BatteryOutputs.vm]
        if not voltage > 0:
            raise RuntimeInputError(f'Observed voltage must be positive. Found: {voltage}')

        # Voltage drop due to the load, assuming no concentration gradient
        current = u[BatteryInputs.p] / voltage
        vo = current * p.ro

        # Candidate compositions, from fully charged to fully discharged, all strictly inside (0, 1)
        num_points = int(round((p.xp_max - p.xp_min) / self.search_step))
        xp = p.xp_min + self.search_step * np.arange(num_points)
        xp = xp[np.logical_and(xp > 0, xp < 1)]
        xn = 1 - xp

        ven, vep = self._electrode_potentials(tb, xn, xp)
        predicted = vep - ven - vo
        matches = np.flatnonzero(predicted <= voltage)
        chosen = matches[0] if len(matches) > 0 else len(xp) - 1
        logger.debug(f'Initial mole fractions xp={xp[chosen]:.4f}, xn={xn[chosen]:.4f}')

        # Charges at the surface, then the bulk with equal concentrations
        qps0 = p.q_max * xp[chosen] * p.vol_s / p.vol
        qns0 = p.q_max * xn[chosen] * p.vol_s / p.vol
        x[s.tb] = tb
        x[s.vo] = vo
        x[s.vsn] = 0.
        x[s.vsp] = 0.
        x[s.qnb] = qns0 * p.vol_b / p.vol_s
        x[s.qns] = qns0
        x[s.qpb] = qps0 * p.vol_b / p.vol_s
        x[s.qps] = qps0


MODELS.add('Battery', BatteryModel.from_config)

"""Base class which defines the state-space models used for prognostics:
how the state evolves under the applied inputs, what outputs are observable from it,
when the asset has reached its end of life, and which quantities are reported in predictions."""
from abc import abstractmethod
from enum import IntEnum
from typing import Any, Sequence, Tuple, Type, Union

import numpy as np

from atropos.exceptions import RuntimeInputError


def check_length(name: str, x: np.ndarray, expected: int):
    """Make sure the last axis of a vector is the length declared by a model

    Args:
        name: Name of the vector, used in the error message
        x: Vector or batch of vectors
        expected: Expected length of the last axis
    """
    if np.shape(x)[-1] != expected:
        raise ValueError(f'Expected {expected} values for the {name}. Found {np.shape(x)[-1]}')


def check_open_interval(name: str, x: Union[float, np.ndarray]):
    """Make sure a normalized composition lies strictly inside (0, 1)

    Logarithmic, fractional-power, and inverse-hyperbolic terms of electrochemical models are singular
    or undefined at the bounds, so values are checked before those terms are evaluated.

    Args:
        name: Name of the quantity, used in the error message
        x: Value or array of values to check
    """
    x = np.asarray(x)
    bad = ~np.logical_and(x > 0., x < 1.)  # NaN is also out of bounds
    if np.any(bad):
        raise RuntimeInputError(f'{name} must lie strictly between 0 and 1. Found: {x[bad].ravel()[:4]}')


class PrognosticsModel:
    """
    Base state-space model. At a minimum, it must be able to:
        1. advance a state vector by one time step given the applied inputs
        2. compute the measurable outputs from a state
        3. decide whether a state has reached the end-of-life condition
        4. rebuild a state from a single observation

    Vectors are numpy arrays whose last axis holds the named values described by the
    index enumerations of each model (e.g., :attr:`states`). A leading batch axis is allowed
    so that many states may be propagated at once, and all operations index
    along the last axis with the enumerations rather than with positional literals.

    Operations write their results into the array they are handed (``x`` for the state equation,
    ``z`` for output equations) and do not modify any other argument.
    """

    states: Type[IntEnum]
    """Index of each state variable"""
    inputs: Type[IntEnum]
    """Index of each input variable"""
    outputs: Type[IntEnum]
    """Index of each output variable"""
    predicted_outputs: Type[IntEnum]
    """Index of each predicted output"""

    dt: float = 1.
    """Default integration step. Units: s"""

    @property
    def num_states(self) -> int:
        return len(self.states)

    @property
    def num_inputs(self) -> int:
        return len(self.inputs)

    @property
    def num_outputs(self) -> int:
        return len(self.outputs)

    @property
    def num_predicted_outputs(self) -> int:
        return len(self.predicted_outputs)

    @property
    def state_names(self) -> Tuple[str, ...]:
        return tuple(s.name for s in self.states)

    @property
    def input_names(self) -> Tuple[str, ...]:
        return tuple(s.name for s in self.inputs)

    @property
    def output_names(self) -> Tuple[str, ...]:
        return tuple(s.name for s in self.outputs)

    @property
    def predicted_output_names(self) -> Tuple[str, ...]:
        return tuple(s.name for s in self.predicted_outputs)

    @property
    def process_noise(self) -> np.ndarray:
        """Variance of the process noise of each state, used when an estimator or predictor is not given one"""
        raise NotImplementedError()

    @property
    def sensor_noise(self) -> np.ndarray:
        """Variance of the sensor noise of each output, used when an estimator is not given one"""
        raise NotImplementedError()

    def zero_states(self, batch_size: int = 0) -> np.ndarray:
        """Make an array of zeros sized for the state vector

        Args:
            batch_size: Size of the leading batch dimension. Zero to make a single vector
        """
        return np.zeros((batch_size, self.num_states) if batch_size else self.num_states)

    def zero_inputs(self, batch_size: int = 0) -> np.ndarray:
        """Make an array of zeros sized for the input vector"""
        return np.zeros((batch_size, self.num_inputs) if batch_size else self.num_inputs)

    def zero_outputs(self, batch_size: int = 0) -> np.ndarray:
        """Make an array of zeros sized for the output vector"""
        return np.zeros((batch_size, self.num_outputs) if batch_size else self.num_outputs)

    def zero_predicted_outputs(self, batch_size: int = 0) -> np.ndarray:
        """Make an array of zeros sized for the predicted output vector"""
        return np.zeros((batch_size, self.num_predicted_outputs) if batch_size else self.num_predicted_outputs)

    @abstractmethod
    def state_eqn(self, t: float, x: np.ndarray, u: np.ndarray, n: np.ndarray, dt: float):
        """Advance the state by one step of explicit (forward Euler) integration

        Args:
            t: Time at the start of the step. Units: s
            x: State at ``t``, replaced in place by the state at ``t + dt``
            u: Inputs applied over the step
            n: Process noise, added as ``n * dt``
            dt: Length of the step. Units: s
        """
        raise NotImplementedError()

    @abstractmethod
    def output_eqn(self, t: float, x: np.ndarray, u: np.ndarray, n: np.ndarray, z: np.ndarray):
        """Compute the measured outputs

        Args:
            t: Time. Units: s
            x: State
            u: Inputs
            n: Sensor noise
            z: Array in which to write the outputs
        """
        raise NotImplementedError()

    @abstractmethod
    def threshold_eqn(self, t: float, x: np.ndarray, u: np.ndarray) -> Union[bool, np.ndarray]:
        """Determine whether the end-of-life condition has been reached

        Args:
            t: Time. Units: s
            x: State, or batch of states
            u: Inputs
        Returns:
            Whether the threshold was met. An array with one entry per batch member if ``x`` is batched
        """
        raise NotImplementedError()

    @abstractmethod
    def predicted_output_eqn(self, t: float, x: np.ndarray, u: np.ndarray, z: np.ndarray):
        """Compute the quantities reported alongside a prediction (e.g., state of charge)

        Args:
            t: Time. Units: s
            x: State
            u: Inputs
            z: Array in which to write the predicted outputs
        """
        raise NotImplementedError()

    @abstractmethod
    def initialize(self, x: np.ndarray, u: np.ndarray, z: np.ndarray):
        """Build a state consistent with an observation

        Args:
            x: Array in which to write the state
            u: Inputs applied when the observation was made
            z: Observed outputs
        """
        raise NotImplementedError()

    @abstractmethod
    def set_parameters(self, calibration: Any):
        """Derive all parameters of the model from its free calibration value

        Args:
            calibration: Calibration value of the model
        """
        raise NotImplementedError()

    def input_eqn(self, t: float, load_params: Sequence[float], u: np.ndarray):
        """Compute the inputs from a piecewise-constant description of future loading

        The loading is a flat list of ``(magnitude, duration)`` pairs.
        The magnitude of the first segment which ends at or after ``t`` is used.
        Once ``t`` exceeds the total duration, the magnitude of the second-to-last segment is used,
        or that of the only segment when there is just one.

        Times are relative to the start of the loading description.
        Models with more than one input must override this method.

        Args:
            t: Time since the start of the loading. Units: s
            load_params: Magnitude and duration of each segment
            u: Array in which to write the inputs
        """
        if len(load_params) < 2 or len(load_params) % 2 != 0:
            raise RuntimeInputError(f'Load parameters must be a non-empty list of (magnitude, duration) pairs.'
                                    f' Found {len(load_params)} values')

        elapsed = 0.
        for magnitude, duration in zip(load_params[::2], load_params[1::2]):
            elapsed += duration
            if t <= elapsed:
                u[..., 0] = magnitude
                return

        # Ran out of segments
        u[..., 0] = load_params[-4] if len(load_params) >= 4 else load_params[0]

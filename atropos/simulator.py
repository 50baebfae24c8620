"""Utility for running prognostics models for large numbers of steps"""
from typing import List, Optional, Sequence

import numpy as np
import pandas as pd

from atropos.models.base import PrognosticsModel, check_length


class Simulator:
    """
    Run a :class:`~atropos.models.base.PrognosticsModel` under a known loading and track results

    The current state, inputs, and outputs are stored as attributes of the class,
    such as :attr:`state` for the state vector.
    The history of the system is stored as lists, such as :attr:`state_history`,
    if ``keep_history`` is True.

    Args:
        model: Model used to simulate the asset
        initial_state: Initial state of the system
        load_params: Loading as ``(magnitude, duration)`` pairs, evaluated with the input equation of the model
        keep_history: Whether to keep history of the system.
    """

    time: float
    """Time since the start of the simulation. Units: s"""
    state: np.ndarray
    """Current state"""
    inputs: np.ndarray
    """Inputs applied over the last step"""
    outputs: np.ndarray
    """Outputs of the current state, without noise"""
    predicted_outputs: np.ndarray
    """Predicted outputs of the current state"""

    time_history: Optional[List[float]]
    """Time of each entry in the history"""
    state_history: Optional[List[np.ndarray]]
    """History of the states"""
    input_history: Optional[List[np.ndarray]]
    """History of inputs into the system"""
    output_history: Optional[List[np.ndarray]]
    """History of the outputs from the system"""
    predicted_output_history: Optional[List[np.ndarray]]
    """History of the predicted outputs"""

    def __init__(self,
                 model: PrognosticsModel,
                 initial_state: np.ndarray,
                 load_params: Sequence[float],
                 keep_history: bool = False):
        check_length('state', initial_state, model.num_states)
        self.model = model
        self.load_params = list(load_params)
        self.time = 0.
        self.state = np.array(initial_state, dtype=float)

        self.inputs = model.zero_inputs()
        model.input_eqn(self.time, self.load_params, self.inputs)
        self.outputs = model.zero_outputs()
        self.predicted_outputs = model.zero_predicted_outputs()
        self._update_outputs()

        self.keep_history = keep_history
        if self.keep_history:
            self.time_history = []
            self.state_history = []
            self.input_history = []
            self.output_history = []
            self.predicted_output_history = []
            self._record()
        else:
            self.time_history = self.state_history = self.input_history = None
            self.output_history = self.predicted_output_history = None

    def _update_outputs(self):
        self.model.output_eqn(self.time, self.state, self.inputs, np.zeros(self.model.num_outputs), self.outputs)
        self.model.predicted_output_eqn(self.time, self.state, self.inputs, self.predicted_outputs)

    def _record(self):
        self.time_history.append(self.time)
        self.state_history.append(self.state.copy())
        self.input_history.append(self.inputs.copy())
        self.output_history.append(self.outputs.copy())
        self.predicted_output_history.append(self.predicted_outputs.copy())

    @property
    def threshold_reached(self) -> bool:
        """Whether the current state meets the threshold of the model"""
        return bool(self.model.threshold_eqn(self.time, self.state, self.inputs))

    def step(self, dt: Optional[float] = None) -> np.ndarray:
        """
        Advance the system by one step

        Args:
            dt: Length of the step. Defaults to the time step of the model

        Returns:
            Outputs at the end of the step
        """
        if dt is None:
            dt = self.model.dt
        self.model.input_eqn(self.time, self.load_params, self.inputs)
        self.model.state_eqn(self.time, self.state, self.inputs, np.zeros(self.model.num_states), dt)
        self.time += dt
        self._update_outputs()

        if self.keep_history:
            self._record()
        return self.outputs.copy()

    def run(self, duration: float, dt: Optional[float] = None) -> np.ndarray:
        """
        Advance the system for a fixed amount of time

        Args:
            duration: Amount of time to simulate. Units: s
            dt: Length of each step. Defaults to the time step of the model

        Returns:
            Outputs at the end of the simulation
        """
        end_time = self.time + duration
        while self.time < end_time:
            self.step(dt)
        return self.outputs.copy()

    def run_until_threshold(self, max_time: float, dt: Optional[float] = None) -> Optional[float]:
        """
        Advance the system until it meets the threshold of the model

        Args:
            max_time: Time at which to stop if the threshold has not been met. Units: s
            dt: Length of each step. Defaults to the time step of the model

        Returns:
            Time at which the threshold was first met, ``None`` if it was not met before ``max_time``
        """
        while not self.threshold_reached:
            if self.time >= max_time:
                return None
            self.step(dt)
        return self.time

    def to_dataframe(self) -> pd.DataFrame:
        """
        Compile the history of the simulator as a Pandas dataframe

        Returns:
            Dataframe with the columns ordered by time, inputs, states, outputs, and predicted outputs
        """

        if not self.keep_history:
            raise ValueError('History was not stored. Set keep_history=True')

        return pd.concat([
            pd.DataFrame({'time': self.time_history}),
            pd.DataFrame(np.array(self.input_history), columns=self.model.input_names),
            pd.DataFrame(np.array(self.state_history), columns=self.model.state_names),
            pd.DataFrame(np.array(self.output_history), columns=self.model.output_names),
            pd.DataFrame(np.array(self.predicted_output_history), columns=self.model.predicted_output_names),
        ], axis=1)

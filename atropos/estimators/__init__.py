"""
Estimators which incrementally adjust the estimate of the state of a model from streamed observations.
"""
from abc import abstractmethod

import numpy as np

from atropos.estimators.distributions import MultivariateRandomDistribution
from atropos.models.base import PrognosticsModel


class StateEstimator:
    """
    The interface for all state estimators

    Estimators are created with :meth:`~atropos.registry.Registry.create` from a model and a configuration map,
    are seeded once with :meth:`initialize`, then refined with each new observation using :meth:`step`.

    Args:
        model: Model describing how the state evolves and what outputs it produces
    """

    def __init__(self, model: PrognosticsModel):
        self.model = model

    @abstractmethod
    def initialize(self, time: float, state: np.ndarray, inputs: np.ndarray):
        """Seed the estimator with a known state

        Args:
            time: Time of the state. Units: s
            state: Initial estimate of the state
            inputs: Inputs applied at that time
        """
        raise NotImplementedError()

    @abstractmethod
    def step(self, time: float, inputs: np.ndarray, outputs: np.ndarray):
        """Update the estimate with a new observation

        Args:
            time: Time of the observation. Units: s. Must be later than the last update
            inputs: Inputs applied since the last update
            outputs: Measured outputs
        """
        raise NotImplementedError()

    @abstractmethod
    def get_state_estimate(self) -> MultivariateRandomDistribution:
        """Current estimate of the state, as a distribution which is not modified by later updates"""
        raise NotImplementedError()

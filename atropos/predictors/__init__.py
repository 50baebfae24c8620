"""Predictors which project an uncertain state forward in time until an event occurs"""
from abc import abstractmethod

from atropos.estimators.distributions import MultivariateRandomDistribution
from atropos.models.base import PrognosticsModel
from atropos.results import PredictionResults


class Predictor:
    """
    The interface for all predictors

    A predictor reads the model and the state estimate it is given and writes its
    outcome into a results container that was sized when the prognoser was built.

    Args:
        model: Model used to propagate the state
    """

    def __init__(self, model: PrognosticsModel):
        self.model = model

    @abstractmethod
    def predict(self, time: float, state_estimate: MultivariateRandomDistribution, results: PredictionResults):
        """Predict when the event occurs and the path of the predicted outputs

        Args:
            time: Time of the state estimate. Units: s
            state_estimate: Distribution of the current state. Not modified
            results: Container which is overwritten in place
        """
        raise NotImplementedError()

"""Model-based prognoser which combines a model, a state estimator and a predictor

The prognoser reads the latest sensor values from a telemetry source each time it is stepped.
The first step seeds the state estimator from the observation using the model.
Every later step with a new timestamp updates the estimate then predicts when the event of the model occurs.
"""
from enum import Enum
from typing import List, Optional
import logging

import numpy as np

# Import the default implementations so they are available in the registries
import atropos.models.battery  # noqa: F401
import atropos.estimators.unscented  # noqa: F401
import atropos.predictors.monte_carlo  # noqa: F401
from atropos.config import ConfigMap, PrognoserSettings
from atropos.estimators import StateEstimator
from atropos.exceptions import ConfigurationError
from atropos.models.base import PrognosticsModel
from atropos.predictors import Predictor
from atropos.registry import MODELS, ESTIMATORS, PREDICTORS
from atropos.results import PredictionResults
from atropos.telemetry import TelemetrySource

logger = logging.getLogger(__name__)


class PrognoserState(Enum):
    """Stage of the life cycle of a prognoser"""

    UNINITIALIZED = 'uninitialized'
    """No observation has been received"""
    RUNNING = 'running'
    """The state estimator has been seeded and each new observation produces a prediction"""


class ModelBasedPrognoser:
    """Predict the remaining life of an asset using a model of its behavior

    Args:
        config: Configuration map holding all of :data:`~atropos.config.REQUIRED_KEYS`
            and any keys used by the chosen model, observer, and predictor
        telemetry: Source of the latest sensor readings
    """

    model: PrognosticsModel
    """Model of the asset"""
    estimator: StateEstimator
    """Estimator which tracks the state of the asset"""
    predictor: Predictor
    """Predictor which forecasts the event"""
    settings: PrognoserSettings
    """Settings read from the required configuration keys"""

    def __init__(self, config: ConfigMap, telemetry: TelemetrySource):
        self._config = dict((k, list(v)) for k, v in config.items())
        self.telemetry = telemetry
        self.settings = PrognoserSettings.from_config(config)

        # Make the collaborators
        self.model = MODELS.create(self.settings.model, config)
        self.estimator = ESTIMATORS.create(self.settings.observer, self.model, config)
        self.predictor = PREDICTORS.create(self.settings.predictor, self.model, config)

        # Make sure the sensor names match the model
        problems = self.check_counts()
        if len(problems) > 0:
            raise ConfigurationError('Configuration does not match the model: ' + '; '.join(problems))

        self._results = PredictionResults.allocate(
            events=[self.settings.event],
            trajectories=self.settings.predicted_outputs,
            num_samples=self.settings.num_samples,
            horizon=self.settings.horizon,
            interval=self.model.dt
        )

        self._state = PrognoserState.UNINITIALIZED
        self._initial_time: Optional[float] = None
        self._last_time: Optional[float] = None
        logger.debug(f'Created prognoser with model={self.settings.model}, observer={self.settings.observer},'
                     f' predictor={self.settings.predictor}')

    def check_counts(self) -> List[str]:
        """Compare the number of configured inputs, outputs and predicted outputs to those of the model

        Returns:
            Description of each mismatch
        """
        problems = []
        for kind, names, expected in [
            ('inputs', self.settings.inputs, self.model.num_inputs),
            ('outputs', self.settings.outputs, self.model.num_outputs),
            ('predicted outputs', self.settings.predicted_outputs, self.model.num_predicted_outputs)
        ]:
            if len(names) != expected:
                problems.append(f'model expects {expected} {kind}, configuration lists {len(names)}')
        return problems

    @property
    def state(self) -> PrognoserState:
        """Stage of the life cycle"""
        return self._state

    @property
    def initial_time(self) -> Optional[float]:
        """Timestamp of the first observation, which is the zero of all times. Units: s"""
        return self._initial_time

    @property
    def last_time(self) -> Optional[float]:
        """Time of the last observation used, relative to :attr:`initial_time`. Units: s"""
        return self._last_time

    @property
    def results(self) -> PredictionResults:
        """Outcome of the latest prediction. The same object is updated by every prediction"""
        return self._results

    @property
    def config(self) -> ConfigMap:
        """Copy of the configuration used to build the prognoser"""
        return dict((k, list(v)) for k, v in self._config.items())

    def _read_sensors(self, names: List[str]) -> np.ndarray:
        return np.array([self.telemetry.get_value(name).value for name in names])

    def step(self) -> bool:
        """Read the latest sensor values then update the estimate and prediction

        Returns:
            Whether a new prediction was produced
        """
        u = self._read_sensors(self.settings.inputs)
        z = self._read_sensors(self.settings.outputs)

        # Times are those of the first output, relative to the observation used to initialize
        timestamp = self.telemetry.get_value(self.settings.outputs[0]).time / 1e3

        if self._state == PrognoserState.UNINITIALIZED:
            x = self.model.zero_states()
            self.model.initialize(x, u, z)
            self.estimator.initialize(0., x, u)
            self._initial_time = timestamp
            self._last_time = 0.
            self._state = PrognoserState.RUNNING
            logger.info(f'Prognoser initialized at t={self._initial_time}')
            return False

        t = timestamp - self._initial_time
        if t <= self._last_time:
            logger.debug(f'Skipping step. No new data since t={self._last_time}')
            return False

        logger.debug(f'Updating estimate at t={t}')
        self.estimator.step(t, u, z)
        self.predictor.predict(t, self.estimator.get_state_estimate(), self._results)
        self._last_time = t
        return True

"""Monte Carlo prediction: propagate many samples of the state under the expected loading"""
from typing import Optional, Sequence
import logging

import numpy as np

from atropos.config import ConfigMap, EVENT_KEY, get_floats, get_int
from atropos.estimators.distributions import MultivariateRandomDistribution
from atropos.exceptions import ConfigurationError
from atropos.models.base import PrognosticsModel, check_length
from atropos.predictors import Predictor
from atropos.registry import PREDICTORS
from atropos.results import PredictionResults

logger = logging.getLogger(__name__)

LOADING_KEY = 'LoadEstimator.loading'
PROCESS_NOISE_KEY = 'Predictor.processNoise'
SEED_KEY = 'Predictor.seed'


class MonteCarloPredictor(Predictor):
    """
    Predict the time of an event by simulating samples drawn from the state estimate

    Each sample advances by one model time step per trajectory point, receives Gaussian process noise,
    and stops once it reaches the threshold of the model. Samples which never reach the threshold
    within the horizon are assigned an infinite time of event.

    Args:
        model: Model used to propagate the state
        loading: Expected future loading as ``(magnitude, duration)`` pairs
        event: Name of the event predicted by the threshold of the model
        process_noise: Variance of the process noise of each state. Defaults to that of the model
        seed: Seed for the random number generator
    """

    def __init__(self,
                 model: PrognosticsModel,
                 loading: Sequence[float],
                 event: str = 'EOD',
                 process_noise: Optional[np.ndarray] = None,
                 seed: Optional[int] = None):
        super().__init__(model)
        self.loading = list(loading)
        self.event = event
        if process_noise is None:
            process_noise = model.process_noise
        process_noise = np.asarray(process_noise, dtype=float)
        check_length('process noise', process_noise, model.num_states)
        if np.any(process_noise < 0):
            raise ValueError('Process noise variances must be non-negative')
        self.process_noise = process_noise
        self.rng = np.random.default_rng(seed)

    @classmethod
    def from_config(cls, model: PrognosticsModel, config: ConfigMap) -> 'MonteCarloPredictor':
        """Create a predictor using the ``LoadEstimator.loading`` and ``Predictor.*`` keys of a configuration map

        Args:
            model: Model used to propagate the state
            config: Configuration map. ``LoadEstimator.loading`` is required
        Returns:
            A predictor
        """
        loading = get_floats(config, LOADING_KEY)
        if loading is None or len(loading) == 0:
            raise ConfigurationError(f'"{LOADING_KEY}" is required by the Monte Carlo predictor')
        if len(loading) % 2 != 0:
            raise ConfigurationError(f'"{LOADING_KEY}" must hold (magnitude, duration) pairs.'
                                     f' Found {len(loading)} values')
        try:
            return cls(
                model,
                loading=loading,
                event=config.get(EVENT_KEY, ['EOD'])[0],
                process_noise=get_floats(config, PROCESS_NOISE_KEY),
                seed=get_int(config, SEED_KEY),
            )
        except ValueError as exc:
            raise ConfigurationError(f'Invalid Monte Carlo predictor settings: {exc}') from exc

    def predict(self, time: float, state_estimate: MultivariateRandomDistribution, results: PredictionResults):
        model = self.model
        num_samples = results.num_samples
        dt = model.dt
        noise_std = np.sqrt(self.process_noise)

        # Reset the outputs
        results.set_prediction_time(time)
        time_of_event = results.events[self.event].time_of_event
        time_of_event[:] = np.inf
        trajectories = list(results.trajectories.values())
        for trajectory in trajectories:
            trajectory.samples[:] = np.nan

        x = state_estimate.sample(num_samples, self.rng)
        u = model.zero_inputs()
        z = model.zero_predicted_outputs(num_samples)
        live = np.ones((num_samples,), dtype=bool)
        for k in range(results.horizon):
            elapsed = k * dt
            t = time + elapsed
            model.input_eqn(elapsed, self.loading, u)
            live_ids = np.flatnonzero(live)
            x_live = x[live_ids]

            # Record the trajectories
            z_live = z[live_ids]
            model.predicted_output_eqn(t, x_live, u, z_live)
            for trajectory, j in zip(trajectories, range(model.num_predicted_outputs)):
                trajectory.samples[k, live_ids] = z_live[:, j]

            # Freeze the samples which reached the event
            reached = np.asarray(model.threshold_eqn(t, x_live, u), dtype=bool)
            time_of_event[live_ids[reached]] = t
            live[live_ids[reached]] = False
            if not live.any():
                logger.debug(f'All samples reached {self.event} after {k} steps')
                break

            # Advance the rest
            x_live = x_live[~reached]
            noise = self.rng.normal(0., noise_std, size=x_live.shape)
            model.state_eqn(t, x_live, u, noise, dt)
            x[live_ids[~reached]] = x_live

        logger.debug(f'Predicted {self.event} at t={time}. {live.sum()}/{num_samples} samples did not reach it')


PREDICTORS.add('MC', MonteCarloPredictor.from_config)

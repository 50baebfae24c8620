"""Containers for the uncertain outcome of a prediction

The containers are sized once, when a prognoser is built, and their arrays are
overwritten in place by every prediction.
"""
from typing import Dict, Sequence

import numpy as np
import pandas as pd
from pydantic import BaseModel, Field


class EventPrediction(BaseModel, arbitrary_types_allowed=True):
    """Samples of the time at which an event occurs"""

    name: str
    """Name of the event"""
    time_of_event: np.ndarray
    """Time at which each sample reached the event. ``inf`` for samples which did not reach it within the horizon.
    Units: s, on the time axis of the prognoser"""

    @property
    def num_samples(self) -> int:
        return len(self.time_of_event)

    def mean(self) -> float:
        """Mean time of event. Infinite if any sample did not reach the event"""
        return float(np.mean(self.time_of_event))

    def median(self) -> float:
        """Median time of event"""
        return self.percentile(50)

    def percentile(self, q: float) -> float:
        """Percentile of the time of event

        Uses the empirical distribution of the samples without interpolation,
        which keeps percentiles well-defined when some samples are infinite.

        Args:
            q: Percentile, between 0 and 100
        Returns:
            Time at or before which ``q`` percent of samples reached the event
        """
        return float(np.percentile(self.time_of_event, q, method='inverted_cdf'))

    def probability_before(self, time: float) -> float:
        """Fraction of samples which reach the event at or before a time"""
        return float(np.mean(self.time_of_event <= time))

    @property
    def reached_fraction(self) -> float:
        """Fraction of samples which reached the event within the prediction horizon"""
        return float(np.mean(np.isfinite(self.time_of_event)))


class Trajectory(BaseModel, arbitrary_types_allowed=True):
    """Samples of the predicted path of a quantity"""

    name: str
    """Name of the predicted output"""
    samples: np.ndarray
    """Value of each sample at each time, shape (horizon, num_samples). ``nan`` once a sample has reached the event"""
    times: np.ndarray
    """Time of each point. Units: s"""

    def mean(self) -> np.ndarray:
        """Mean at each time over the samples which have yet to reach the event. ``nan`` where none remain"""
        valid = np.isfinite(self.samples)
        count = valid.sum(axis=1)
        total = np.where(valid, self.samples, 0.).sum(axis=1)
        with np.errstate(invalid='ignore', divide='ignore'):
            return np.where(count > 0, total / count, np.nan)


class PredictionResults(BaseModel, arbitrary_types_allowed=True):
    """Outcome of one prediction: when each event occurs and the path of each predicted output"""

    num_samples: int = Field(gt=0)
    """Number of samples for each uncertain quantity"""
    horizon: int = Field(gt=0)
    """Number of points in each trajectory"""
    interval: float = Field(1., gt=0)
    """Time between points of each trajectory. Units: s"""
    prediction_time: float = float('nan')
    """Time at which the last prediction was made. ``nan`` before the first prediction"""
    events: Dict[str, EventPrediction] = Field(default_factory=dict)
    """Predictions of each event"""
    trajectories: Dict[str, Trajectory] = Field(default_factory=dict)
    """Predicted path of each output"""

    @classmethod
    def allocate(cls, events: Sequence[str], trajectories: Sequence[str],
                 num_samples: int, horizon: int, interval: float = 1.) -> 'PredictionResults':
        """Create the container and all arrays it holds

        Args:
            events: Names of the events being predicted
            trajectories: Names of the predicted outputs
            num_samples: Number of samples for each uncertain quantity
            horizon: Number of points in each trajectory
            interval: Time between points of each trajectory
        Returns:
            Results where no event is reached and every trajectory point is unknown
        """
        return cls(
            num_samples=num_samples,
            horizon=horizon,
            interval=interval,
            events=dict(
                (name, EventPrediction(name=name, time_of_event=np.full((num_samples,), np.inf)))
                for name in events
            ),
            trajectories=dict(
                (name, Trajectory(name=name,
                                  samples=np.full((horizon, num_samples), np.nan),
                                  times=np.full((horizon,), np.nan)))
                for name in trajectories
            )
        )

    def set_prediction_time(self, time: float):
        """Mark the time at which a prediction starts and update the time of each trajectory point

        Args:
            time: Time of the prediction. Units: s
        """
        self.prediction_time = time
        for trajectory in self.trajectories.values():
            trajectory.times[:] = time + self.interval * np.arange(self.horizon)

    def to_dataframe(self) -> pd.DataFrame:
        """Summarize the trajectories as a dataframe

        Returns:
            Dataframe with the time of each point, and the mean and standard deviation of each trajectory
        """
        output = pd.DataFrame({'time': self.prediction_time + self.interval * np.arange(self.horizon)})
        for name, trajectory in self.trajectories.items():
            output[f'{name}_mean'] = trajectory.mean()
            output[f'{name}_std'] = _nan_std(trajectory.samples)
        return output


def _nan_std(samples: np.ndarray) -> np.ndarray:
    """Standard deviation of each row, ignoring ``nan``"""
    valid = np.isfinite(samples)
    count = valid.sum(axis=1)
    with np.errstate(invalid='ignore', divide='ignore'):
        mean = np.where(valid, samples, 0.).sum(axis=1) / count
        var = np.where(valid, (samples - mean[:, None]) ** 2, 0.).sum(axis=1) / count
    return np.where(count > 0, np.sqrt(var), np.nan)

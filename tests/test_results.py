import numpy as np
from pytest import raises

from atropos.results import EventPrediction, PredictionResults, Trajectory


def test_allocate():
    results = PredictionResults.allocate(['EOD'], ['SOC', 'Power'], num_samples=4, horizon=3, interval=2.)
    assert np.isnan(results.prediction_time)
    assert results.events['EOD'].time_of_event.shape == (4,)
    assert np.isinf(results.events['EOD'].time_of_event).all()
    assert list(results.trajectories) == ['SOC', 'Power']
    assert results.trajectories['SOC'].samples.shape == (3, 4)
    assert results.trajectories['SOC'].samples is not results.trajectories['Power'].samples
    assert results.trajectories['SOC'].times is not results.trajectories['Power'].times

    results.set_prediction_time(10.)
    assert results.prediction_time == 10.
    assert np.allclose(results.trajectories['Power'].times, [10., 12., 14.])

    with raises(ValueError):
        PredictionResults.allocate(['EOD'], ['SOC'], num_samples=0, horizon=3)


def test_event_statistics():
    event = EventPrediction(name='EOD', time_of_event=np.array([1., 2., 3., np.inf]))
    assert event.num_samples == 4
    assert np.isinf(event.mean())
    assert event.median() == 2.
    assert event.percentile(0) == 1.
    assert np.isinf(event.percentile(100))
    assert event.probability_before(2.5) == 0.5
    assert event.probability_before(0.) == 0.
    assert event.reached_fraction == 0.75

    event.time_of_event[:] = [1., 2., 3., 4.]
    assert event.mean() == 2.5
    assert event.reached_fraction == 1.


def test_trajectory_mean():
    trajectory = Trajectory(
        name='SOC',
        samples=np.array([[1., 3.], [2., np.nan], [np.nan, np.nan]]),
        times=np.arange(3.)
    )
    mean = trajectory.mean()
    assert np.allclose(mean[:2], [2., 2.])
    assert np.isnan(mean[2])


def test_dataframe():
    results = PredictionResults.allocate(['EOD'], ['SOC'], num_samples=2, horizon=3)
    results.set_prediction_time(5.)
    results.trajectories['SOC'].samples[:] = [[1., 0.8], [0.9, np.nan], [np.nan, np.nan]]

    df = results.to_dataframe()
    assert list(df.columns) == ['time', 'SOC_mean', 'SOC_std']
    assert np.allclose(df['time'], [5., 6., 7.])
    assert np.allclose(df['SOC_mean'].iloc[:2], [0.9, 0.9])
    assert np.allclose(df['SOC_std'].iloc[:2], [0.1, 0.])
    assert np.isnan(df['SOC_mean'].iloc[2])
    assert np.isnan(df['SOC_std'].iloc[2])

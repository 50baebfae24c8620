from typing import List

import numpy as np
from pytest import fixture, raises

from atropos.estimators import StateEstimator
from atropos.estimators.distributions import DeltaDistribution
from atropos.exceptions import ConfigurationError, RuntimeInputError
from atropos.models.battery import BatteryOutputs
from atropos.predictors import Predictor
from atropos.prognoser import ModelBasedPrognoser, PrognoserState
from atropos.registry import ESTIMATORS, PREDICTORS
from atropos.results import PredictionResults
from atropos.telemetry import InMemoryTelemetry


class RecordingEstimator(StateEstimator):
    """Estimator which records how it was called"""

    def __init__(self, model):
        super().__init__(model)
        self.initialize_calls: List[float] = []
        self.step_calls: List[float] = []
        self.state = None

    def initialize(self, time, state, inputs):
        self.initialize_calls.append(time)
        self.state = np.array(state)

    def step(self, time, inputs, outputs):
        self.step_calls.append(time)

    def get_state_estimate(self):
        return DeltaDistribution(mean=self.state)


class RecordingPredictor(Predictor):
    """Predictor which records how it was called"""

    def __init__(self, model):
        super().__init__(model)
        self.predict_calls: List[float] = []

    def predict(self, time, state_estimate, results: PredictionResults):
        self.predict_calls.append(time)
        results.set_prediction_time(time)
        results.events['EOD'].time_of_event[:] = time + 100.


@fixture()
def recording_config(config):
    ESTIMATORS.add('Recording', lambda model, _: RecordingEstimator(model))
    PREDICTORS.add('Recording', lambda model, _: RecordingPredictor(model))
    config['observer'] = ['Recording']
    config['predictor'] = ['Recording']
    yield config
    ESTIMATORS.remove('Recording')
    PREDICTORS.remove('Recording')


def observe(battery_model, state, telemetry: InMemoryTelemetry, time: float, power: float = 8.):
    """Write the outputs of a state to the telemetry"""
    z = battery_model.zero_outputs()
    battery_model.output_eqn(0., state, np.array([power]), np.zeros(2), z)
    telemetry.update_many({'p': power, 'tbm': z[BatteryOutputs.tbm], 'vm': z[BatteryOutputs.vm]}, time=time)


def test_construction(config):
    prognoser = ModelBasedPrognoser(config, InMemoryTelemetry())
    assert prognoser.state == PrognoserState.UNINITIALIZED
    assert prognoser.initial_time is None
    assert prognoser.last_time is None
    assert prognoser.results.num_samples == 5
    assert prognoser.results.horizon == 10
    assert list(prognoser.results.events) == ['EOD']
    assert list(prognoser.results.trajectories) == ['SOC']
    assert prognoser.check_counts() == []


def test_configuration_errors(config):
    bad = dict(config)
    del bad['Model.event']
    bad['inputs'] = []
    with raises(ConfigurationError, match='Model.event, inputs'):
        ModelBasedPrognoser(bad, InMemoryTelemetry())

    for key, value, match in [
        ('model', ['Unicorn'], 'No model named "Unicorn"'),
        ('observer', ['Unicorn'], 'No observer named'),
        ('predictor', ['Unicorn'], 'No predictor named'),
        ('Predictor.horizon', ['0'], 'Invalid prognoser configuration'),
        ('Predictor.numSamples', ['five'], 'Invalid prognoser configuration'),
        ('outputs', ['vm'], 'model expects 2 outputs, configuration lists 1'),
        ('inputs', ['p', 'i'], 'model expects 1 inputs'),
        ('Model.predictedOutputs', ['SOC', 'SOH'], 'predicted outputs'),
        ('Battery.qMobile', ['-1'], 'Battery.qMobile'),
    ]:
        bad = dict(config)
        bad[key] = value
        with raises(ConfigurationError, match=match):
            ModelBasedPrognoser(bad, InMemoryTelemetry())


def test_invocation_counts(recording_config, battery_model, full_state):
    telemetry = InMemoryTelemetry()
    prognoser = ModelBasedPrognoser(recording_config, telemetry)
    estimator: RecordingEstimator = prognoser.estimator
    predictor: RecordingPredictor = prognoser.predictor

    # Missing data is an error
    with raises(KeyError):
        prognoser.step()

    # The first step initializes
    observe(battery_model, full_state, telemetry, 5000.)
    assert not prognoser.step()
    assert prognoser.state == PrognoserState.RUNNING
    assert prognoser.initial_time == 5.
    assert prognoser.last_time == 0.
    assert estimator.initialize_calls == [0.]
    assert estimator.step_calls == []
    assert predictor.predict_calls == []
    assert np.allclose(estimator.state[4:], full_state[4:])

    # Repeated data is skipped
    assert not prognoser.step()
    assert estimator.step_calls == []
    assert predictor.predict_calls == []

    # New data is used
    for i, time in enumerate([6000., 7500.]):
        observe(battery_model, full_state, telemetry, time)
        assert prognoser.step()
        assert len(estimator.step_calls) == i + 1
        assert len(predictor.predict_calls) == i + 1
    assert estimator.initialize_calls == [0.]
    assert estimator.step_calls == [1., 2.5]
    assert predictor.predict_calls == [1., 2.5]
    assert prognoser.initial_time == 5.
    assert prognoser.last_time == 2.5
    assert prognoser.results.prediction_time == 2.5
    assert np.allclose(prognoser.results.events['EOD'].time_of_event, 102.5)

    # Older data is skipped
    observe(battery_model, full_state, telemetry, 6500.)
    assert not prognoser.step()
    assert estimator.step_calls == [1., 2.5]
    assert prognoser.last_time == 2.5


def test_time_reference(recording_config, battery_model, full_state):
    """Times come from the first output, even when other sensors report later"""
    telemetry = InMemoryTelemetry()
    prognoser = ModelBasedPrognoser(recording_config, telemetry)
    observe(battery_model, full_state, telemetry, 1000.)
    telemetry.update('p', 8., 9000.)
    prognoser.step()
    assert prognoser.initial_time == 1.

    telemetry.update('p', 8., 10000.)
    assert not prognoser.step()

    observe(battery_model, full_state, telemetry, 2000.)
    assert prognoser.step()
    assert prognoser.last_time == 1.


def test_battery_prognoser(config, battery_model, full_state):
    """Run the full stack: battery model, unscented Kalman filter, and Monte Carlo predictor"""
    telemetry = InMemoryTelemetry()
    prognoser = ModelBasedPrognoser(config, telemetry)
    results = prognoser.results
    toe = results.events['EOD'].time_of_event
    soc = results.trajectories['SOC'].samples

    state = full_state.copy()
    observe(battery_model, state, telemetry, 0.)
    assert not prognoser.step()
    for time in range(1, 6):
        battery_model.state_eqn(time - 1., state, np.array([8.]), np.zeros(8), 1.)
        observe(battery_model, state, telemetry, time * 1000.)
        assert prognoser.step()

    # The container is updated in place
    assert prognoser.results is results
    assert results.events['EOD'].time_of_event is toe
    assert results.trajectories['SOC'].samples is soc
    assert results.prediction_time == 5.

    # The horizon is too short to reach the end of discharge
    assert np.isinf(toe).all()
    assert np.isfinite(soc).all()
    assert (soc > 0.9).all() and (soc < 1.01).all()
    assert np.allclose(results.trajectories['SOC'].times, 5. + np.arange(10))


def test_config_round_trip(config):
    prognoser = ModelBasedPrognoser(config, InMemoryTelemetry())
    copied = prognoser.config
    assert copied == config

    # The copy is independent of the prognoser
    copied['model'].append('Other')
    assert prognoser.config == config

    other = ModelBasedPrognoser(prognoser.config, InMemoryTelemetry())
    assert other.settings == prognoser.settings
    assert other.model.parameters == prognoser.model.parameters


def test_failed_initialization(recording_config, battery_model, full_state):
    """A sample which cannot seed the estimator does not set the time reference"""
    telemetry = InMemoryTelemetry()
    prognoser = ModelBasedPrognoser(recording_config, telemetry)
    telemetry.update_many({'p': 8., 'tbm': 20., 'vm': 0.}, time=1000.)
    with raises(RuntimeInputError, match='voltage'):
        prognoser.step()
    assert prognoser.state == PrognoserState.UNINITIALIZED
    assert prognoser.initial_time is None
    assert prognoser.last_time is None

    observe(battery_model, full_state, telemetry, 5000.)
    assert not prognoser.step()
    assert prognoser.state == PrognoserState.RUNNING
    assert prognoser.initial_time == 5.
    assert prognoser.estimator.initialize_calls == [0.]

    observe(battery_model, full_state, telemetry, 6000.)
    assert prognoser.step()
    assert prognoser.estimator.step_calls == [1.]

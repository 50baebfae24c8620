import numpy as np
from pytest import raises, fixture

from atropos.estimators.unscented import UnscentedKalmanFilter as UKF
from atropos.estimators.unscented import (compute_unscented_covariance, covariance_from_values, covariance_square_root,
                                          repair_covariance)
from atropos.exceptions import ConfigurationError
from atropos.models.battery import BatteryStates, BatteryOutputs
from atropos.registry import ESTIMATORS
from atropos.simulator import Simulator


@fixture()
def ukf(battery_model) -> UKF:
    return UKF(battery_model)


def test_weights(ukf):
    assert ukf._aug_len == 8 * 2 + 2
    assert np.isclose(ukf.mean_weights.sum(), 1.)
    assert np.isclose(ukf.gamma_param, np.sqrt(18.))
    assert np.isclose(ukf.cov_weights[0], ukf.mean_weights[0] + 2.)


def test_covariance():
    weights = np.array([0.5, 0.25, 0.25])
    diffs = np.array([[0., 0.], [1., 2.], [-1., -2.]])
    cov = compute_unscented_covariance(weights, diffs)
    assert np.allclose(cov, [[0.5, 1.], [1., 2.]])


def test_repair_covariance():
    good = np.array([[2., 0.5], [0.5, 1.]])
    assert np.allclose(repair_covariance(good), good)

    # Negative eigenvalues are raised to zero
    fixed = repair_covariance(np.array([[1., 2.], [2., 1.]]))
    assert np.allclose(fixed, fixed.T)
    assert np.allclose(np.linalg.eigvalsh(fixed), [0., 3.])

    # Asymmetric matrices are averaged with their transpose
    fixed = repair_covariance(np.array([[1., 0.2], [0., 1.]]))
    assert np.allclose(fixed, [[1., 0.1], [0.1, 1.]])


def test_square_root():
    cov = np.array([[4., 1., 0.], [1., 2., 0.], [0., 0., 0.]])
    root = covariance_square_root(cov)
    assert np.allclose(np.matmul(root, root.T), cov)


def test_covariance_from_values():
    assert np.allclose(covariance_from_values([1., 2.], 2, 'Q'), np.diag([1., 2.]))
    assert np.allclose(covariance_from_values([1., 0.5, 0.5, 2.], 2, 'Q'), [[1., 0.5], [0.5, 2.]])
    with raises(ValueError, match='either 2 or 4'):
        covariance_from_values([1., 2., 3.], 2, 'Q')


def test_from_config(battery_model):
    ukf = ESTIMATORS.create('UKF', battery_model, {})
    assert np.allclose(np.diag(ukf.cov_w), battery_model.process_noise)
    assert np.allclose(np.diag(ukf.cov_v), battery_model.sensor_noise)
    assert ukf.alpha_param == 1.
    assert ukf.beta_param == 2.
    assert ukf.kappa_param == 0.

    ukf = UKF.from_config(battery_model, {
        'Observer.Q': ['1e-5'] * 8,
        'Observer.R': ['1e-2', '0', '0', '1e-3'],
        'Observer.alpha': ['0.5'],
        'Observer.kappa': ['1'],
    })
    assert np.allclose(ukf.cov_w, 1e-5 * np.eye(8))
    assert np.allclose(ukf.cov_v, np.diag([1e-2, 1e-3]))
    assert ukf.alpha_param == 0.5
    assert ukf.kappa_param == 1.

    for key, value in [('Observer.Q', ['1.'] * 3), ('Observer.alpha', ['2']), ('Observer.beta', ['-1']),
                       ('Observer.kappa', ['-100']), ('Observer.R', ['a', 'b'])]:
        with raises(ConfigurationError):
            UKF.from_config(battery_model, {key: value})


def test_sigma_points(ukf, full_state):
    ukf.initialize(0., full_state, np.zeros(1))
    sigma_pts = ukf.build_sigma_points()
    assert sigma_pts.shape == (2 * ukf._aug_len + 1, ukf._aug_len)
    assert np.allclose(sigma_pts[0, :8], full_state)
    assert np.allclose(np.dot(ukf.mean_weights, sigma_pts)[:8], full_state)


def test_step_failures(ukf, full_state):
    with raises(ValueError, match='initialized'):
        ukf.step(1., np.zeros(1), np.zeros(2))
    with raises(ValueError, match='initialized'):
        ukf.get_state_estimate()

    ukf.initialize(1., full_state, np.zeros(1))
    with raises(ValueError, match='Time must advance'):
        ukf.step(1., np.zeros(1), np.zeros(2))
    with raises(ValueError, match='output'):
        ukf.step(2., np.zeros(1), np.zeros(3))


def test_tracking(battery_model, full_state, ukf):
    """Follow a cell discharged at constant power"""
    simulator = Simulator(battery_model, full_state, load_params=[8., 1000.])
    u = np.array([8.])
    ukf.initialize(0., full_state, u)

    for _ in range(200):
        z = simulator.step()
        ukf.step(simulator.time, u, z)
    assert ukf.time == simulator.time

    estimate = ukf.get_state_estimate()
    assert estimate.num_dimensions == 8

    # The state of charge matches
    soc_true, soc_est = battery_model.zero_predicted_outputs(), battery_model.zero_predicted_outputs()
    battery_model.predicted_output_eqn(simulator.time, simulator.state, u, soc_true)
    battery_model.predicted_output_eqn(simulator.time, estimate.get_mean(), u, soc_est)
    assert soc_true[0] < 0.99
    assert abs(soc_true[0] - soc_est[0]) < 0.01

    # The voltage of the estimated state matches the measurement
    z = battery_model.zero_outputs()
    battery_model.output_eqn(simulator.time, estimate.get_mean(), u, np.zeros(2), z)
    assert abs(z[BatteryOutputs.vm] - simulator.outputs[BatteryOutputs.vm]) < 0.01

    # The covariance stays valid
    cov = estimate.get_covariance()
    assert np.allclose(cov, cov.T)
    assert np.all(np.diag(cov) >= 0)
    assert np.isclose(estimate.get_mean()[BatteryStates.tb], full_state[BatteryStates.tb], atol=0.1)

    # The estimate is a copy
    estimate.mean[0] = 0.
    assert ukf.get_state_estimate().mean[0] != 0.


def test_substeps(battery_model, full_state, ukf):
    """Long gaps between measurements are integrated in steps no longer than that of the model"""
    simulator = Simulator(battery_model, full_state, load_params=[8., 1000.])
    u = np.array([8.])
    ukf.initialize(0., full_state, u)

    simulator.run(10.)
    ukf.step(10., u, simulator.outputs)
    soc_true, soc_est = battery_model.zero_predicted_outputs(), battery_model.zero_predicted_outputs()
    battery_model.predicted_output_eqn(10., simulator.state, u, soc_true)
    battery_model.predicted_output_eqn(10., ukf.get_state_estimate().get_mean(), u, soc_est)
    assert abs(soc_true[0] - soc_est[0]) < 1e-3

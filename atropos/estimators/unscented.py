""" Definition of Unscented Kálmán Filter (UKF)"""
from functools import cached_property
from math import ceil
from typing import Dict, Optional, Tuple
import logging

import numpy as np
from scipy.linalg import block_diag

from atropos.config import ConfigMap, get_float, get_floats
from atropos.estimators import StateEstimator
from atropos.estimators.distributions import MultivariateGaussian
from atropos.exceptions import ConfigurationError
from atropos.models.base import PrognosticsModel, check_length
from atropos.registry import ESTIMATORS

logger = logging.getLogger(__name__)

PROCESS_NOISE_KEY = 'Observer.Q'
SENSOR_NOISE_KEY = 'Observer.R'
ALPHA_KEY = 'Observer.alpha'
BETA_KEY = 'Observer.beta'
KAPPA_KEY = 'Observer.kappa'


def assemble_unscented_estimate_from_samples(samples: np.ndarray,
                                             mean_weights: np.ndarray,
                                             cov_weights: np.ndarray) -> Dict:
    """
    Function that takes a collection of samples and computes the relative mean and covariance based on the weights
    provided

    Args:
        samples: array of propagated sigma points
        mean_weights: weights to be used by the computation of the mean
        cov_weights: weights to be used by the computation of the covariance

    Returns:
        Dictionary of containing 'mean' and 'covariance'
    """
    mu = np.dot(mean_weights, samples)

    # Weights may be negative, so the covariance is not computed with np.cov
    diffs = samples - mu
    cov = compute_unscented_covariance(cov_weights=cov_weights, array0=diffs)
    return {'mean': mu, 'covariance': cov}


def compute_unscented_covariance(cov_weights: np.ndarray,
                                 array0: np.ndarray,
                                 array1: Optional[np.ndarray] = None,
                                 ) -> np.ndarray:
    """
    Function that computes the unscented covariance between zero-mean arrays. If second array is not provided,
    this is equivalent to computing the unscented variance of the only provided array.
    """
    if array1 is None:
        array1 = array0
    return np.matmul(array0.T, np.matmul(np.diag(cov_weights), array1))


def covariance_from_values(values: np.ndarray, size: int, name: str) -> np.ndarray:
    """Build a covariance matrix from either its diagonal or all of its entries

    Args:
        values: Either ``size`` variances or the ``size * size`` entries of the matrix in row-major order
        size: Number of dimensions
        name: Name of the matrix, used in error messages
    Returns:
        Square covariance matrix
    """
    values = np.asarray(values, dtype=float)
    if values.size == size:
        return np.diag(values)
    elif values.size == size * size:
        return values.reshape((size, size))
    raise ValueError(f'{name} requires either {size} or {size * size} values. Found {values.size}')


def repair_covariance(cov: np.ndarray) -> np.ndarray:
    """Make a covariance matrix symmetric and raise any negative eigenvalues to zero

    Rounding in the correction step can leave the state covariance slightly asymmetric,
    or with small negative variances when the measurements are much more certain than the prediction.

    Args:
        cov: Covariance matrix
    Returns:
        Symmetric, positive semi-definite matrix
    """
    cov = (cov + cov.T) / 2
    eigvals, eigvecs = np.linalg.eigh(cov)
    if eigvals.min() >= 0:
        return cov
    return np.matmul(eigvecs * np.clip(eigvals, 0, None), eigvecs.T)


def covariance_square_root(cov: np.ndarray) -> np.ndarray:
    """Compute a matrix ``S`` such that ``S S^T`` is the covariance

    Uses the eigendecomposition rather than a Cholesky factorization,
    so that dimensions with zero variance are allowed.

    Args:
        cov: Symmetric, positive semi-definite matrix
    Returns:
        Square root of the matrix, whose columns are the directions along which sigma points are spread
    """
    eigvals, eigvecs = np.linalg.eigh(cov)
    return eigvecs * np.sqrt(np.clip(eigvals, 0, None))


class UnscentedKalmanFilter(StateEstimator):
    """
    Class that defines the functionality of the Unscented Kalman Filter

    Sigma points are drawn over the state augmented with the process and sensor noise,
    propagated through the state equation of the model in steps no longer than the model's
    integration step, and mapped to outputs with the output equation.

    Args:
        model: model describing the system
        covariance_process_noise: covariance of process noise (default = diagonal of the model's process noise)
        covariance_sensor_noise: covariance of sensor noise (default = diagonal of the model's sensor noise)
        alpha_param: tuning parameter 0.001 <= alpha <= 1 used to control the spread of the sigma points; lower values
            keep sigma points closer to the mean (default = 1.)
        kappa_param: tuning parameter kappa > - aug_len; choose values of kappa >=0 for positive semidefiniteness.
            (default = 0.)
        beta_param: tuning parameter beta >=0 used to incorporate knowledge of prior distribution; for Gaussian use
            beta = 2 (default = 2.)
    """

    hidden: Optional[MultivariateGaussian] = None
    """Current estimate of the state"""
    time: Optional[float] = None
    """Time of the current estimate. Units: s"""

    def __init__(self,
                 model: PrognosticsModel,
                 covariance_process_noise: Optional[np.ndarray] = None,
                 covariance_sensor_noise: Optional[np.ndarray] = None,
                 alpha_param: float = 1.,
                 kappa_param: float = 0.,
                 beta_param: float = 2.):
        super().__init__(model)

        self._aug_len = int((2 * model.num_states) + model.num_outputs)

        if not 0.001 <= alpha_param <= 1:
            raise ValueError(f'Alpha parameter must lie between 0.001 and 1. Found: {alpha_param}')
        if beta_param < 0:
            raise ValueError(f'Beta parameter must be >= 0. Found: {beta_param}')
        if self._aug_len + kappa_param <= 0:
            raise ValueError(f'Kappa parameter ({kappa_param}) must be > - Augmented_length L ({self._aug_len})')
        self.alpha_param = alpha_param
        self.beta_param = beta_param
        self.kappa_param = kappa_param

        if covariance_process_noise is None:
            covariance_process_noise = np.diag(model.process_noise)
        if covariance_sensor_noise is None:
            covariance_sensor_noise = np.diag(model.sensor_noise)
        covariance_process_noise = np.asarray(covariance_process_noise, dtype=float)
        covariance_sensor_noise = np.asarray(covariance_sensor_noise, dtype=float)
        if covariance_process_noise.shape != (model.num_states, model.num_states):
            raise ValueError(f'Process noise covariance must have shape {(model.num_states, model.num_states)}.'
                             f' Found {covariance_process_noise.shape}')
        if covariance_sensor_noise.shape != (model.num_outputs, model.num_outputs):
            raise ValueError(f'Sensor noise covariance must have shape {(model.num_outputs, model.num_outputs)}.'
                             f' Found {covariance_sensor_noise.shape}')
        self.cov_w = covariance_process_noise.copy()
        self.cov_v = covariance_sensor_noise.copy()
        self.controls = np.zeros(model.num_inputs)

    @classmethod
    def from_config(cls, model: PrognosticsModel, config: ConfigMap) -> 'UnscentedKalmanFilter':
        """Create a filter using the ``Observer.*`` keys of a configuration map

        Args:
            model: Model describing the system
            config: Configuration map. All ``Observer.*`` keys are optional
        Returns:
            A filter which has yet to be initialized
        """
        try:
            q = get_floats(config, PROCESS_NOISE_KEY)
            r = get_floats(config, SENSOR_NOISE_KEY)
            return cls(
                model,
                covariance_process_noise=None if q is None else covariance_from_values(q, model.num_states, 'Q'),
                covariance_sensor_noise=None if r is None else covariance_from_values(r, model.num_outputs, 'R'),
                alpha_param=get_float(config, ALPHA_KEY, 1.),
                beta_param=get_float(config, BETA_KEY, 2.),
                kappa_param=get_float(config, KAPPA_KEY, 0.),
            )
        except ConfigurationError:
            raise
        except ValueError as exc:
            raise ConfigurationError(f'Invalid unscented Kalman filter settings: {exc}') from exc

    @cached_property
    def gamma_param(self) -> float:
        return self.alpha_param * np.sqrt(self._aug_len + self.kappa_param)

    @cached_property
    def lambda_param(self) -> float:
        return (self.alpha_param * self.alpha_param * (self._aug_len + self.kappa_param)) - self._aug_len

    @cached_property
    def mean_weights(self) -> np.ndarray:
        mean_weights = 0.5 * np.ones((2 * self._aug_len + 1))
        mean_weights[0] = self.lambda_param
        mean_weights /= (self.alpha_param * self.alpha_param * (self._aug_len + self.kappa_param))
        return mean_weights

    @cached_property
    def cov_weights(self) -> np.ndarray:
        cov_weights = self.mean_weights.copy()
        cov_weights[0] += 1 - (self.alpha_param * self.alpha_param) + self.beta_param
        return cov_weights

    def initialize(self, time: float, state: np.ndarray, inputs: np.ndarray):
        check_length('state', state, self.model.num_states)
        check_length('input', inputs, self.model.num_inputs)
        self.hidden = MultivariateGaussian(mean=np.array(state, dtype=float), covariance=self.cov_w.copy())
        self.controls = np.array(inputs, dtype=float)
        self.time = time
        logger.debug(f'Initialized UKF at t={time}')

    def step(self, time: float, inputs: np.ndarray, outputs: np.ndarray):
        """
        Steps the UKF

        Args:
            time: time of the new measurement. Units: s
            inputs: new control variables
            outputs: new measurements
        """
        if self.hidden is None:
            raise ValueError('The filter must be initialized before it is stepped')
        if time <= self.time:
            raise ValueError(f'Time must advance. Last update at {self.time}, new measurement at {time}')
        inputs = np.array(inputs, dtype=float)
        outputs = np.asarray(outputs, dtype=float)
        check_length('input', inputs, self.model.num_inputs)
        check_length('output', outputs, self.model.num_outputs)

        # Step 0: build Sigma points
        sigma_pts = self.build_sigma_points()
        # Step 1: perform estimation update
        x_k_minus, y_k, cov_xy = self.estimation_update(sigma_pts=sigma_pts, time=time, new_controls=inputs)
        # Step 2: correction step, adjust hidden states based on new measurement
        self.correction_update(x_k_minus=x_k_minus, y_hat=y_k, cov_xy=cov_xy, y=outputs)

        self.controls = inputs
        self.time = time

    def get_state_estimate(self) -> MultivariateGaussian:
        if self.hidden is None:
            raise ValueError('The filter has not been initialized')
        return self.hidden.model_copy(deep=True)

    def build_sigma_points(self) -> np.ndarray:
        """
        Function to build Sigma points.

        Returns:
            2D numpy array, where each row represents an "augmented state" consisting of hidden state, process noise,
            and sensor noise, in that order.
        """
        # Noise terms are all zero-mean
        x_aug = np.hstack((self.hidden.get_mean(), np.zeros(self.model.num_states + self.model.num_outputs)))

        cov_aug = block_diag(self.hidden.get_covariance(), self.cov_w, self.cov_v)

        # Sigma points are the augmented "mean" plus and minus gamma_param times each column of the square root
        sqrt_cov_aug = covariance_square_root(cov_aug).T
        aux_sigma_pts = np.vstack((np.zeros((self._aug_len,)),
                                   self.gamma_param * sqrt_cov_aug,
                                   -self.gamma_param * sqrt_cov_aug))
        return x_aug + aux_sigma_pts

    def _break_sigma_pts(self, sigma_pts: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Function to break Sigma points into its hidden state, process noise, and sensor noise parts

        Args:
            sigma_pts: Sigma points matrix to be broken up

        Returns:
            - x_hid: array corresponding to iterable of hidden states
            - w_hid: array corresponding to iterable of process noises
            - v_hid: array corresponding to iterable of sensor noises
        """
        dim = self.model.num_states
        x_hid = sigma_pts[:, :dim].copy()
        w_hid = sigma_pts[:, dim:(2 * dim)].copy()
        v_hid = sigma_pts[:, (2 * dim):].copy()
        return x_hid, w_hid, v_hid

    def _evolve_hidden(self, hidden_states: np.ndarray, process_noise: np.ndarray,
                       time: float, new_controls: np.ndarray):
        """
        Advance the hidden states of the sigma points in place from the time of the last estimate to ``time``

        Args:
            hidden_states: array of hidden states from breaking of the Sigma points
            process_noise: process noise of each Sigma point
            time: time of the new measurement
            new_controls: inputs applied over the interval
        """
        elapsed = time - self.time
        num_steps = max(1, ceil(elapsed / self.model.dt))
        dt = elapsed / num_steps
        t = self.time
        for _ in range(num_steps):
            self.model.state_eqn(t, hidden_states, new_controls, process_noise, dt)
            t += dt

    def estimation_update(self,
                          sigma_pts: np.ndarray,
                          time: float,
                          new_controls: np.ndarray) -> Tuple[MultivariateGaussian, MultivariateGaussian, np.ndarray]:
        """
        Function to perform the estimation update from the Sigma points

        Args:
            sigma_pts: numpy array corresponding to the Sigma points built
            time: time of the new measurement
            new_controls: new control to be used to evolve Sigma points

        Returns:
            - x_k_minus: new estimate of the hidden state corresponding to x_k_minus (includes mean and covariance!)
            - y_k: estimate of the output measurement (includes mean and covariance!)
            - cov_xy: covariance matrix between hidden state and output
        """
        # Step 1a: break up Sigma points to get hidden states, process errors, and sensor errors
        x_hid, w_hid, v_hid = self._break_sigma_pts(sigma_pts=sigma_pts)

        # Step 1b: evolve hidden states, the process noise enters through the state equation
        self._evolve_hidden(x_hid, w_hid, time, new_controls)
        x_k_minus = MultivariateGaussian.model_validate(assemble_unscented_estimate_from_samples(
            samples=x_hid, mean_weights=self.mean_weights, cov_weights=self.cov_weights
        ))

        # Step 1c: use updated hidden states to predict outputs, including the sensor noise
        y_preds = self.model.zero_outputs(len(x_hid))
        self.model.output_eqn(time, x_hid, new_controls, v_hid, y_preds)
        y_k = MultivariateGaussian.model_validate(assemble_unscented_estimate_from_samples(
            samples=y_preds, mean_weights=self.mean_weights, cov_weights=self.cov_weights
        ))

        cov_xy = compute_unscented_covariance(cov_weights=self.cov_weights,
                                              array0=(x_hid - x_k_minus.get_mean()),
                                              array1=(y_preds - y_k.get_mean()))
        return x_k_minus, y_k, cov_xy

    def correction_update(self,
                          x_k_minus: MultivariateGaussian,
                          y_hat: MultivariateGaussian,
                          cov_xy: np.ndarray,
                          y: np.ndarray):
        """
        Function to perform the correction update of the hidden state, based on the real measured output values.

        Args:
            x_k_minus: estimate of the hidden state P(x_k|y_(k-1))
            y_hat: output predictions P(y_k|y_k-1)
            cov_xy: covariance between hidden state and predicted output
            y: real measured output values
        """
        # Kálmán gain, cov_xy * inv(cov_y)
        l_k = np.linalg.solve(y_hat.get_covariance(), cov_xy.T).T

        # Kálmán innovation (the error in the output predictions)
        innovation = y.flatten() - y_hat.get_mean()

        x_k_hat_plus = x_k_minus.get_mean() + np.matmul(l_k, innovation)
        cov_x_k_plus = x_k_minus.get_covariance() - np.matmul(l_k, np.matmul(y_hat.get_covariance(), l_k.T))
        cov_x_k_plus = repair_covariance(cov_x_k_plus)
        self.hidden = MultivariateGaussian(mean=x_k_hat_plus, covariance=cov_x_k_plus)


ESTIMATORS.add('UKF', UnscentedKalmanFilter.from_config)

"""Probability distributions over the state vector of a model

Estimators report their belief about the state as one of these distributions,
and predictors draw the initial states of their samples from it.
"""
from abc import abstractmethod
from typing import Optional
from typing_extensions import Self

import numpy as np
from pydantic import Field, field_validator, model_validator, BaseModel


def _flatten_mean(mu: np.ndarray) -> np.ndarray:
    """Make sure the mean is a 1D vector. Row and column vectors are rejected to avoid ambiguity"""
    mu = np.asarray(mu, dtype=float)
    if mu.ndim != 1 or mu.size == 0:
        raise ValueError(f'Mean must be a non-empty 1D vector. Found shape {mu.shape}')
    return mu


class MultivariateRandomDistribution(BaseModel, arbitrary_types_allowed=True):
    """Base class for the uncertain value of a state vector"""

    @property
    def num_dimensions(self) -> int:
        """Length of the vector described by the distribution"""
        return len(self.get_mean())

    @abstractmethod
    def get_mean(self) -> np.ndarray:
        """Expected value of the vector"""
        raise NotImplementedError()

    @abstractmethod
    def get_covariance(self) -> np.ndarray:
        """Covariance between each pair of entries in the vector"""
        raise NotImplementedError()

    @abstractmethod
    def sample(self, num_samples: int, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        """
        Draw vectors from the distribution

        Args:
            num_samples: number of samples to draw
            rng: random number generator; a new, unseeded generator is used if not provided

        Returns:
            2D array where each row is one sample
        """
        raise NotImplementedError()


class DeltaDistribution(MultivariateRandomDistribution, validate_assignment=True):
    """
    A state known without uncertainty

    Args:
        mean: the state
    """

    mean: np.ndarray = Field(description='Only value the state can take')

    @field_validator('mean', mode='after')
    @classmethod
    def mean_1d(cls, mu: np.ndarray) -> np.ndarray:
        return _flatten_mean(mu)

    def get_mean(self) -> np.ndarray:
        return self.mean.copy()

    def get_covariance(self) -> np.ndarray:
        return np.zeros((self.num_dimensions, self.num_dimensions))

    def sample(self, num_samples: int, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        return np.tile(self.mean, (num_samples, 1))


class MultivariateGaussian(MultivariateRandomDistribution, validate_assignment=True):
    """
    A state described by a multivariate normal distribution, as tracked by Kálmán filters

    Args:
        mean: expected state
        covariance: a 2D array of shape (dim, dim)
    """
    mean: np.ndarray = Field(description='Expected value of the state')
    covariance: np.ndarray = Field(description='Covariance matrix of the state')

    @field_validator('mean', mode='after')
    @classmethod
    def mean_1d(cls, mu: np.ndarray) -> np.ndarray:
        return _flatten_mean(mu)

    @field_validator('covariance', mode='after')
    @classmethod
    def cov_2d(cls, sigma: np.ndarray) -> np.ndarray:
        sigma = np.asarray(sigma, dtype=float)
        if sigma.ndim != 2:
            raise ValueError(f'Covariance must be a 2D matrix. Found shape {sigma.shape}')
        return sigma

    @model_validator(mode='after')
    def fields_dim(self) -> Self:
        """Make sure the covariance matches the length of the mean"""
        dim = self.num_dimensions
        if self.covariance.shape != (dim, dim):
            raise ValueError(f'Covariance of a {dim}-dimensional state must have shape {(dim, dim)}.'
                             f' Found {self.covariance.shape}')
        return self

    def get_mean(self) -> np.ndarray:
        return self.mean.copy()

    def get_covariance(self) -> np.ndarray:
        return self.covariance.copy()

    def sample(self, num_samples: int, rng: Optional[np.random.Generator] = None) -> np.ndarray:
        if rng is None:
            rng = np.random.default_rng()
        # Cholesky-based sampling fails for covariances with zero variance in any dimension
        return rng.multivariate_normal(mean=self.mean, cov=self.covariance, size=num_samples, method='eigh')

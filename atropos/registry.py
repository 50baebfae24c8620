"""Registries which map the names used in configuration files to the implementations of each role

Three registries are available:

- :data:`MODELS`: factories with signature ``factory(config) -> PrognosticsModel``
- :data:`ESTIMATORS`: factories with signature ``factory(model, config) -> StateEstimator``
- :data:`PREDICTORS`: factories with signature ``factory(model, config) -> Predictor``

Register a new implementation by decorating its factory

.. code-block:: python

    @MODELS.register('MyModel')
    def make_my_model(config):
        return MyModel(...)
"""
from typing import Any, Callable, Dict, Generic, List, TypeVar
import logging

from atropos.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


class Registry(Generic[F]):
    """Mapping between names and factory functions for one role

    Args:
        role: Name of the role, used in error messages
    """

    def __init__(self, role: str):
        self.role = role
        self._factories: Dict[str, F] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    @property
    def names(self) -> List[str]:
        """Names of all registered implementations"""
        return sorted(self._factories.keys())

    def add(self, name: str, factory: F):
        """Register a factory

        Args:
            name: Name used to select the implementation
            factory: Function which creates the implementation
        """
        if name in self._factories and self._factories[name] is not factory:
            raise ValueError(f'A {self.role} named "{name}" is already registered')
        self._factories[name] = factory

    def register(self, name: str) -> Callable[[F], F]:
        """Decorator which registers a factory under a name"""

        def _decorator(factory: F) -> F:
            self.add(name, factory)
            return factory

        return _decorator

    def remove(self, name: str):
        """Remove a factory from the registry"""
        self._factories.pop(name)

    def create(self, name: str, *args, **kwargs) -> Any:
        """Build an implementation by name

        Args:
            name: Name of the implementation
            args: Positional arguments passed to the factory
            kwargs: Keyword arguments passed to the factory
        Returns:
            The new object
        """
        if name not in self._factories:
            raise ConfigurationError(f'No {self.role} named "{name}". Available: {", ".join(self.names)}')
        logger.debug(f'Creating {self.role} "{name}"')
        return self._factories[name](*args, **kwargs)


MODELS: Registry = Registry('model')
ESTIMATORS: Registry = Registry('observer')
PREDICTORS: Registry = Registry('predictor')

"""Access to the configuration maps which describe a prognoser

A configuration map is a dictionary from string keys to lists of string values,
as produced by whatever parses the configuration files of a deployment.
The helpers here convert those strings to typed values and report problems
as :class:`~atropos.exceptions.ConfigurationError`.
"""
from typing import Collection, Dict, List, Optional
import math

from pydantic import BaseModel, Field, ValidationError, field_validator

from atropos.exceptions import ConfigurationError

ConfigMap = Dict[str, List[str]]
"""Configuration as a mapping of keys to lists of (string) values"""

MODEL_KEY = 'model'
OBSERVER_KEY = 'observer'
PREDICTOR_KEY = 'predictor'
EVENT_KEY = 'Model.event'
NUM_SAMPLES_KEY = 'Predictor.numSamples'
HORIZON_KEY = 'Predictor.horizon'
PREDICTED_OUTPUTS_KEY = 'Model.predictedOutputs'
INPUTS_KEY = 'inputs'
OUTPUTS_KEY = 'outputs'

REQUIRED_KEYS = (
    MODEL_KEY, OBSERVER_KEY, PREDICTOR_KEY, EVENT_KEY, NUM_SAMPLES_KEY,
    HORIZON_KEY, PREDICTED_OUTPUTS_KEY, INPUTS_KEY, OUTPUTS_KEY
)
"""Keys which must be present to build a model-based prognoser"""


def find_missing_keys(config: ConfigMap, keys: Collection[str] = REQUIRED_KEYS) -> List[str]:
    """Find which of a list of keys are absent, or have no values, in a configuration map

    Args:
        config: Configuration to be checked
        keys: Names of the keys which must be present
    Returns:
        Names of the missing keys, in the order they were requested
    """
    return [key for key in keys if len(config.get(key, ())) == 0]


def get_floats(config: ConfigMap, key: str, default: Optional[List[float]] = None) -> Optional[List[float]]:
    """Read all values of a key as floating point numbers

    Args:
        config: Configuration map
        key: Name of the key
        default: Value returned if the key is absent
    Returns:
        List of the values
    """
    if key not in config:
        return default
    try:
        return [float(v) for v in config[key]]
    except ValueError as exc:
        raise ConfigurationError(f'Values of "{key}" must be numbers. Found: {config[key]}') from exc


def get_float(config: ConfigMap, key: str, default: Optional[float] = None,
              minimum: Optional[float] = None, strict: bool = False) -> Optional[float]:
    """Read the first value of a key as a floating point number

    Args:
        config: Configuration map
        key: Name of the key
        default: Value returned if the key is absent
        minimum: Lowest allowed value
        strict: Whether the value must be strictly greater than the minimum
    Returns:
        The value
    """
    values = get_floats(config, key)
    if values is None:
        return default
    if len(values) == 0:
        raise ConfigurationError(f'No value provided for "{key}"')
    value = values[0]
    if not math.isfinite(value):
        raise ConfigurationError(f'"{key}" must be a finite number. Found: {value}')
    if minimum is not None and (value < minimum or (strict and value == minimum)):
        relation = '>' if strict else '>='
        raise ConfigurationError(f'"{key}" must be {relation} {minimum}. Found: {value}')
    return value


def get_int(config: ConfigMap, key: str, default: Optional[int] = None, minimum: Optional[int] = None) -> Optional[int]:
    """Read the first value of a key as an integer

    Args:
        config: Configuration map
        key: Name of the key
        default: Value returned if the key is absent
        minimum: Lowest allowed value
    Returns:
        The value
    """
    if key not in config:
        return default
    try:
        value = int(config[key][0])
    except (ValueError, IndexError) as exc:
        raise ConfigurationError(f'"{key}" must be an integer. Found: {config[key]}') from exc
    if minimum is not None and value < minimum:
        raise ConfigurationError(f'"{key}" must be >= {minimum}. Found: {value}')
    return value


class PrognoserSettings(BaseModel):
    """Settings common to all model-based prognosers, read from the required keys of a configuration map"""

    model: str
    """Name of the model implementation"""
    observer: str
    """Name of the state estimator implementation"""
    predictor: str
    """Name of the predictor implementation"""
    event: str
    """Name of the event being predicted"""
    num_samples: int = Field(gt=0)
    """Number of samples used to represent each uncertain quantity"""
    horizon: int = Field(gt=0)
    """Number of points in each predicted trajectory"""
    predicted_outputs: List[str]
    """Names of the predicted outputs"""
    inputs: List[str]
    """Telemetry names of the model inputs, in model order"""
    outputs: List[str]
    """Telemetry names of the model outputs, in model order. The first is the time reference"""

    @field_validator('inputs', 'outputs', 'predicted_outputs')
    @classmethod
    def _not_empty(cls, names: List[str]) -> List[str]:
        if len(names) == 0:
            raise ValueError('At least one name is required')
        return names

    @classmethod
    def from_config(cls, config: ConfigMap) -> 'PrognoserSettings':
        """Read the settings from a configuration map

        Args:
            config: Configuration map holding all of :data:`REQUIRED_KEYS`
        Returns:
            Parsed settings
        """

        missing = find_missing_keys(config)
        if len(missing) > 0:
            raise ConfigurationError(f'Missing required configuration keys: {", ".join(missing)}')

        try:
            return cls(
                model=config[MODEL_KEY][0],
                observer=config[OBSERVER_KEY][0],
                predictor=config[PREDICTOR_KEY][0],
                event=config[EVENT_KEY][0],
                num_samples=config[NUM_SAMPLES_KEY][0],
                horizon=config[HORIZON_KEY][0],
                predicted_outputs=list(config[PREDICTED_OUTPUTS_KEY]),
                inputs=list(config[INPUTS_KEY]),
                outputs=list(config[OUTPUTS_KEY]),
            )
        except ValidationError as exc:
            raise ConfigurationError(f'Invalid prognoser configuration: {exc}') from exc

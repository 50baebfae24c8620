from pytest import fixture
import numpy as np
import pandas as pd

from atropos.config import ConfigMap
from atropos.models.battery import BatteryModel
from atropos.simulator import Simulator


@fixture()
def battery_model() -> BatteryModel:
    return BatteryModel()


@fixture()
def full_state(battery_model) -> np.ndarray:
    """State of a fully-charged cell at rest"""
    return battery_model.fully_charged_state()


@fixture()
def config() -> ConfigMap:
    """Configuration of a battery prognoser with a short horizon"""
    return {
        'model': ['Battery'],
        'observer': ['UKF'],
        'predictor': ['MC'],
        'Model.event': ['EOD'],
        'Predictor.numSamples': ['5'],
        'Predictor.horizon': ['10'],
        'Predictor.seed': ['1'],
        'Model.predictedOutputs': ['SOC'],
        'LoadEstimator.loading': ['8', '100'],
        'inputs': ['p'],
        'outputs': ['tbm', 'vm'],
    }


def make_discharge(model: BatteryModel, initial_state: np.ndarray, duration: float, power: float = 8.) -> pd.DataFrame:
    """Simulate a cell under constant power

    Args:
        model: Model of the cell
        initial_state: Starting state
        duration: Length of the simulation. Units: s
        power: Power drawn from the cell. Units: W
    Returns:
        History of the simulation
    """
    simulator = Simulator(model, initial_state, load_params=[power, duration], keep_history=True)
    simulator.run(duration)
    return simulator.to_dataframe()


@fixture()
def discharge_dataset(battery_model, full_state) -> pd.DataFrame:
    """A minute of discharge at 8 W, starting from a full charge"""
    return make_discharge(battery_model, full_state, 60.)

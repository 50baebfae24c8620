import numpy as np
from pytest import raises

from atropos.models.battery import BatteryStates
from atropos.simulator import Simulator


def test_dataframe(battery_model, full_state):
    simulator = Simulator(battery_model, full_state, load_params=[8., 5., 4., 100.], keep_history=True)
    simulator.run(10.)
    assert simulator.time == 10.
    assert simulator.inputs[0] == 4.

    df = simulator.to_dataframe()
    assert len(df) == 11
    assert list(df.columns) == ['time', 'p', 'tb', 'vo', 'vsn', 'vsp', 'qnb', 'qns', 'qpb', 'qps', 'tbm', 'vm', 'soc']
    assert np.allclose(df['time'], np.arange(11.))
    assert np.allclose(df['p'].iloc[1:7], 8.)
    assert np.allclose(df['p'].iloc[7:], 4.)

    # Charge leaves the negative electrode and voltage drops
    assert (np.diff(df['qns']) < 0).all()
    assert (np.diff(df['soc']) < 0).all()
    assert df['vm'].iloc[-1] < df['vm'].iloc[0]

    # The initial state is copied
    assert simulator.state[BatteryStates.qns] < full_state[BatteryStates.qns]
    assert np.allclose(df[list(battery_model.state_names)].iloc[0], full_state)


def test_dataframe_failure(battery_model, full_state):
    simulator = Simulator(battery_model, full_state, load_params=[8., 100.], keep_history=False)
    simulator.step()
    assert simulator.state_history is None

    with raises(ValueError, match='was not stored'):
        simulator.to_dataframe()


def test_step_size(battery_model, full_state):
    simulator = Simulator(battery_model, full_state, load_params=[8., 100.])
    outputs = simulator.step(0.5)
    assert simulator.time == 0.5
    assert np.allclose(outputs, simulator.outputs)
    simulator.run(2., dt=0.5)
    assert simulator.time == 2.5


def test_threshold_limit(battery_model, full_state):
    simulator = Simulator(battery_model, full_state, load_params=[8., 100.])
    assert simulator.run_until_threshold(20.) is None
    assert simulator.time == 20.
    assert not simulator.threshold_reached

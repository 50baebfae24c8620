from pytest import raises

from atropos.telemetry import InMemoryTelemetry, TimestampedValue


def test_in_memory():
    telemetry = InMemoryTelemetry()
    with raises(KeyError, match='voltage'):
        telemetry.get_value('voltage')

    telemetry.update('voltage', 4.2, 1000)
    assert telemetry.get_value('voltage') == TimestampedValue(4.2, 1000.)
    assert telemetry.get_value('voltage').time == 1000.

    telemetry.update_many({'voltage': 4.1, 'temperature': 20}, time=2000)
    assert telemetry.get_value('voltage').value == 4.1
    assert telemetry.get_value('temperature') == TimestampedValue(20., 2000.)

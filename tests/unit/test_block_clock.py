import pytest

from emulator.node.blockchain import BlockClock


class FakeTime:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


def test_block_number_advances_with_interval():
    clock_time = FakeTime()
    clock = BlockClock(10, time_source=clock_time)

    assert clock.get_current_block_number() == 0
    clock_time.now += 9.9
    assert clock.get_current_block_number() == 0
    clock_time.now += 0.1
    assert clock.get_current_block_number() == 1
    clock_time.now += 25
    assert clock.get_current_block_number() == 3


def test_start_block_offset():
    clock_time = FakeTime()
    clock = BlockClock(1, start_block=50, time_source=clock_time)
    clock_time.now += 2

    assert clock.get_current_block_number() == 52


@pytest.mark.parametrize("interval", [0, -1])
def test_interval_must_be_positive(interval):
    with pytest.raises(ValueError):
        BlockClock(interval)

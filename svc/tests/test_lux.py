import pytest

from sunlightmeter.errors import Overflow
from sunlightmeter.lux import calculate_lux, counts_per_lux, full_spectrum, infrared, visible
from sunlightmeter.sensors.constants import Gain, IntegrationTime


def test_reference_reading():
    assert counts_per_lux(Gain.LOW, IntegrationTime.MS_300) == pytest.approx(0.7353, abs=1e-4)
    lux = calculate_lux(10000, 2000, Gain.LOW, IntegrationTime.MS_300)
    assert lux == pytest.approx(8704.0, abs=0.01)


def test_calculate_is_deterministic():
    first = calculate_lux(1234, 321, Gain.MED, IntegrationTime.MS_500)
    second = calculate_lux(1234, 321, Gain.MED, IntegrationTime.MS_500)
    assert first == second


@pytest.mark.parametrize(
    "ch0, ch1",
    [(0xFFFF, 100), (100, 0xFFFF), (0xFFFF, 0xFFFF)],
)
def test_saturated_channel_overflows(ch0, ch1):
    with pytest.raises(Overflow) as exc:
        calculate_lux(ch0, ch1, Gain.LOW, IntegrationTime.MS_300)
    assert exc.value.ch0 == ch0
    assert exc.value.ch1 == ch1


def test_just_below_saturation_is_not_overflow():
    lux = calculate_lux(0xFFFE, 0xFFFE - 1, Gain.LOW, IntegrationTime.MS_100)
    assert lux >= 0


def test_dark_channel_zero_gives_zero_lux():
    assert calculate_lux(0, 0, Gain.MAX, IntegrationTime.MS_600) == 0.0
    assert calculate_lux(0, 5, Gain.LOW, IntegrationTime.MS_100) == 0.0


def test_lux_scales_with_gain_and_integration():
    low = calculate_lux(5000, 1000, Gain.LOW, IntegrationTime.MS_100)
    high = calculate_lux(5000, 1000, Gain.MAX, IntegrationTime.MS_600)
    assert low / high == pytest.approx(9876.0 * 6)


def test_normalized_outputs():
    assert full_spectrum(0xFFFF, 0) == 1.0
    assert infrared(0, 0xFFFF) == 1.0
    assert visible(3000, 1000) == pytest.approx(2000 / 0xFFFF)


def test_visible_clamped_at_zero():
    # more infrared than full spectrum should not go negative
    assert visible(100, 200) == 0.0

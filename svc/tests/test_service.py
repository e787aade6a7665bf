from datetime import datetime, timedelta, timezone

import pytest

from sunlightmeter import service as service_module
from sunlightmeter.sensors.simulated_bus import SimulatedTSL2591Bus
from sunlightmeter.service import MeterService, build_service, classify_light_condition
from sunlightmeter.state import _db_connection, initialize_database


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    monkeypatch.setattr("sunlightmeter.state.DB_FILE", str(tmp_path / "test_sunlight.db"))
    initialize_database()


@pytest.mark.parametrize(
    "full_sun, recorded, expected",
    [
        (6.0, 10.0, "Full Sun"),
        (3.0, 10.0, "Partial Sun"),
        (2.0, 10.0, "Partial Shade"),
        (1.0, 10.0, "Shade"),
        (0.0, 0.0, "Shade"),
    ],
)
def test_classify_light_condition(full_sun, recorded, expected):
    assert classify_light_condition(full_sun, recorded) == expected


def test_build_service_in_sim_mode():
    svc = build_service("sim")
    assert svc.device is not None
    assert svc.mode == "sim"
    assert svc.sensor_status().connected is True


def test_build_service_without_sensor(monkeypatch):
    monkeypatch.setattr(service_module, "_open_bus", lambda mode: SimulatedTSL2591Bus(device_id=0x00))
    svc = build_service("real")
    assert svc.device is None
    assert svc.sensor_status().connected is False


def test_build_service_when_sensor_rejects_writes(monkeypatch):
    class ReadOnlyBus(SimulatedTSL2591Bus):
        def write_byte_data(self, i2c_addr, register, value):
            raise OSError(121, "Remote I/O error")

    monkeypatch.setattr(service_module, "_open_bus", lambda mode: ReadOnlyBus())
    svc = build_service("real")
    assert svc.device is None
    assert svc.sensor_status().connected is False


def test_build_service_when_bus_cannot_open(monkeypatch):
    def no_bus(mode):
        raise FileNotFoundError(2, "No such file or directory: '/dev/i2c-1'")

    monkeypatch.setattr(service_module, "_open_bus", no_bus)
    assert build_service("real").device is None


def test_range_conditions(temp_db):
    end = datetime(2024, 3, 3, 20, 0)
    with _db_connection() as conn:
        # two hours of recording, one of them in full sun
        for minute in range(120):
            ts = datetime(2024, 3, 3, 10, 0) + timedelta(minutes=minute)
            lux = "20000.00000" if minute < 60 else "500.00000"
            conn.execute(
                "INSERT INTO sunlight (job_id, lux, full_spectrum, visible, infrared, created_at) "
                "VALUES (?, ?, '0', '0', '0', ?)",
                ("job-1", lux, ts.strftime("%Y-%m-%d %H:%M:%S")),
            )

    result = MeterService(None).range_conditions(datetime(2024, 3, 3, 8, 0), end)
    assert result.full_sunlight_hours == pytest.approx(1.0)
    assert result.recorded_hours == pytest.approx(119 / 60)
    assert result.light_condition == "Full Sun"
    assert result.average_lux == pytest.approx((60 * 20000 + 60 * 500) / 120)
    assert result.date_range == "2024-03-03 08:00:00 - 2024-03-03 20:00:00 UTC"


def test_range_conditions_accepts_aware_datetimes(temp_db):
    start = datetime(2024, 3, 3, 8, 0, tzinfo=timezone(timedelta(hours=-5)))
    end = datetime(2024, 3, 3, 10, 0, tzinfo=timezone(timedelta(hours=-5)))
    result = MeterService(None).range_conditions(start, end)
    assert result.date_range == "2024-03-03 13:00:00 - 2024-03-03 15:00:00 UTC"


def test_range_conditions_rejects_inverted_range(temp_db):
    with pytest.raises(ValueError):
        MeterService(None).range_conditions(datetime(2024, 3, 4), datetime(2024, 3, 3))


def test_list_samples_rejects_inverted_range(temp_db):
    with pytest.raises(ValueError):
        MeterService(None).list_samples(start=datetime(2024, 3, 4), end=datetime(2024, 3, 3))

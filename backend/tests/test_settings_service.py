import pytest

from shopledger.errors import InvalidRequest
from shopledger.models import StoreSettings
from shopledger.services import settings_service


def test_defaults_when_no_row(app, db_session):
    record = settings_service.load_store_settings()

    assert record.store_name == "My Store"
    assert record.currency == "AZN"
    assert record.tax_rate_bps == 0
    assert record.timezone == app.config["STORE_TIMEZONE"]


def test_record_is_immutable(db_session):
    record = settings_service.load_store_settings()
    with pytest.raises(AttributeError):
        record.store_name = "Changed"


def test_update_creates_then_patches_single_row(db_session):
    settings_service.update_store_settings({"store_name": "Mobile World", "tax_id": "1234567891"})
    record = settings_service.update_store_settings({"currency": "usd", "tax_rate_bps": 1800})

    assert record.store_name == "Mobile World"
    assert record.tax_id == "1234567891"
    assert record.currency == "USD"
    assert record.tax_rate_bps == 1800
    assert db_session.query(StoreSettings).count() == 1


@pytest.mark.parametrize("payload", [
    {"tax_rate_bps": 10001},
    {"tax_rate_bps": -1},
    {"currency": "EURO"},
    {"store_name": ""},
    {"version_id": 7},
    {"unknown": "x"},
])
def test_invalid_patches_rejected(db_session, payload):
    with pytest.raises(InvalidRequest):
        settings_service.update_store_settings(payload)

    assert db_session.query(StoreSettings).count() == 0

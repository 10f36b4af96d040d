from pymongo.errors import ServerSelectionTimeoutError

from postithere.db import CONFIG_COLLECTION
from postithere.flags import ConfigStore, RegistrationGate


def test_gate_is_closed_when_flag_is_absent(gate):
    assert gate.is_registration_open() is False


def test_gate_follows_the_flag_on_every_call(gate):
    gate.set_registration_open(True)
    assert gate.is_registration_open() is True

    gate.set_registration_open(False)
    assert gate.is_registration_open() is False


def test_flag_written_by_an_operator_is_seen(gate, db):
    db[CONFIG_COLLECTION].update_one(
        {"key": "allowRegistration"}, {"$set": {"value": True}}, upsert=True
    )
    assert gate.is_registration_open() is True


def test_non_boolean_flag_value_falls_back_to_default(db):
    db[CONFIG_COLLECTION].insert_one({"key": "allowRegistration", "value": "yes"})
    assert ConfigStore(db).get_bool("allowRegistration") is False
    assert ConfigStore(db).get_bool("allowRegistration", default=True) is True


def test_gate_fails_closed_when_store_is_unreachable(db, monkeypatch):
    def unreachable(*args, **kwargs):
        raise ServerSelectionTimeoutError("no servers")

    monkeypatch.setattr("postithere.flags.find_document", unreachable)
    gate = RegistrationGate(ConfigStore(db))
    assert gate.is_registration_open() is False


def test_set_bool_upserts_a_single_document(db):
    store = ConfigStore(db)
    store.set_bool("allowRegistration", True)
    store.set_bool("allowRegistration", True)
    assert db[CONFIG_COLLECTION].count_documents({"key": "allowRegistration"}) == 1

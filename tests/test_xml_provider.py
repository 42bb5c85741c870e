import threading
import xml.etree.ElementTree as ET

import pytest

from skyexplorer_auth.auth.errors import IdentityConflictError, StorageError
from skyexplorer_auth.auth.providers.xml import AtomicCounter, XmlUserProvider
from skyexplorer_auth.auth.service import AuthService


def _write(path, content):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_creates_directory_and_empty_document(xml_path):
    assert not xml_path.exists()

    XmlUserProvider({"XML_FILE": str(xml_path)})

    root = ET.parse(xml_path).getroot()
    assert root.tag == "users"
    assert len(root) == 0


def test_document_layout(xml_provider, xml_path, make_identity):
    xml_provider.save(make_identity("alice", roles={"USER", "ADMIN"}))

    root = ET.parse(xml_path).getroot()
    (user,) = root.findall("user")
    assert user.attrib == {
        "id": "1",
        "username": "alice",
        "email": "alice@example.com",
        "password": "$2b$04$hash",
        "roles": "ADMIN,USER",
    }


def test_next_id_continues_from_existing_records(xml_path, make_identity):
    _write(
        xml_path,
        '<users><user id="3" username="a" email="a@x" password="h" roles="USER"/>'
        '<user id="7" username="b" email="b@x" password="h" roles="USER"/></users>',
    )

    provider = XmlUserProvider({"XML_FILE": str(xml_path)})

    assert provider.save(make_identity("c")).id == 8


def test_roles_are_trimmed_and_empty_segments_dropped(xml_path):
    _write(
        xml_path,
        '<users><user id="1" username="a" email="a@x" password="h" roles=" USER , ,ADMIN "/>'
        '<user id="2" username="b" email="b@x" password="h"/></users>',
    )
    provider = XmlUserProvider({"XML_FILE": str(xml_path)})

    assert provider.find_by_username("a").roles == {"USER", "ADMIN"}
    assert provider.find_by_username("b").roles == set()


def test_reads_see_external_edits(xml_provider, xml_path):
    _write(xml_path, '<users><user id="5" username="hand" email="h@x" password="h" roles="USER"/></users>')

    assert xml_provider.find_by_username("hand").id == 5


def test_unknown_id_advances_sequence(xml_provider, make_identity):
    xml_provider.save(make_identity("dave", id=42))
    assert xml_provider.save(make_identity("erin")).id == 43


def test_malformed_document_is_a_storage_error(xml_provider, xml_path):
    _write(xml_path, "<users><user id=")

    with pytest.raises(StorageError):
        xml_provider.find_by_username("alice")


def test_wrong_root_element_is_a_storage_error(xml_provider, xml_path):
    _write(xml_path, "<people/>")

    with pytest.raises(StorageError):
        xml_provider.find_all()


def test_non_numeric_id_is_a_storage_error(xml_provider, xml_path):
    _write(xml_path, '<users><user id="abc" username="a" email="a@x" password="h"/></users>')

    with pytest.raises(StorageError):
        xml_provider.find_by_username("a")


def test_failed_write_leaves_document_untouched(xml_provider, xml_path, make_identity):
    xml_provider.save(make_identity("alice"))
    before = xml_path.read_bytes()

    with pytest.raises(RuntimeError):
        with xml_provider.store.mutate() as root:
            root.clear()
            raise RuntimeError("boom")

    assert xml_path.read_bytes() == before


def test_concurrent_saves_produce_unique_ids(xml_provider, xml_path, make_identity):
    count = 25
    barrier = threading.Barrier(count)
    errors = []

    def register(i):
        try:
            barrier.wait()
            xml_provider.save(make_identity(f"user{i}"))
        except Exception as e:  # noqa: BLE001
            errors.append(e)

    threads = [threading.Thread(target=register, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []

    root = ET.parse(xml_path).getroot()
    ids = [int(el.get("id")) for el in root.findall("user")]
    assert len(ids) == count
    assert len(set(ids)) == count
    assert {el.get("username") for el in root.findall("user")} == {f"user{i}" for i in range(count)}


def test_atomic_counter():
    counter = AtomicCounter(5)

    assert counter.get_and_increment() == 5
    counter.advance_past(10)
    assert counter.get_and_increment() == 11
    counter.advance_past(3)
    assert counter.value == 12


def test_transaction_is_a_noop_context(xml_provider, make_identity):
    with xml_provider.transaction():
        xml_provider.save(make_identity("tx"))

    assert xml_provider.exists_by_username("tx")


def test_concurrent_registrations_of_one_username_keep_a_single_row(
    xml_provider, xml_path, encoder
):
    count = 8
    service = AuthService(xml_provider, encoder)
    barrier = threading.Barrier(count)
    created, conflicts, errors = [], [], []

    def register(i):
        try:
            barrier.wait()
            created.append(service.register("alice", f"alice{i}@example.com", "pw"))
        except IdentityConflictError as e:
            conflicts.append(e)
        except Exception as e:  # noqa: BLE001
            errors.append(e)

    threads = [threading.Thread(target=register, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert len(created) == 1
    assert len(conflicts) == count - 1

    root = ET.parse(xml_path).getroot()
    assert [el.get("username") for el in root.findall("user")] == ["alice"]


def test_id_is_only_assigned_after_a_successful_write(xml_provider, make_identity, monkeypatch):
    def failing_write(document):
        raise StorageError("disk full")

    monkeypatch.setattr(xml_provider.store, "_write", failing_write)
    identity = make_identity("alice")

    with pytest.raises(StorageError):
        xml_provider.save(identity)

    assert identity.id is None
    assert identity.is_new

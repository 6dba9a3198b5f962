import pytest
from sqlalchemy.exc import OperationalError

from marketplace.exceptions import IdentityError, TransientStoreError, ValidationError
from marketplace.models import Message
from marketplace.services.message_service import MessageService

from conftest import BUYER_ID, LISTING_ID, OTHER_BUYER_ID, OTHER_LISTING_ID, SELLER_ID


@pytest.fixture
def service(marketplace):
    return MessageService(marketplace)


def test_list_messages_is_symmetric(service):
    service.insert_message(BUYER_ID, SELLER_ID, LISTING_ID, "Is this still available?")
    service.insert_message(SELLER_ID, BUYER_ID, LISTING_ID, "Yes it is")
    service.insert_message(BUYER_ID, SELLER_ID, LISTING_ID, "Great")

    forward = [m.id for m in service.list_messages(BUYER_ID, SELLER_ID, LISTING_ID)]
    backward = [m.id for m in service.list_messages(SELLER_ID, BUYER_ID, LISTING_ID)]

    assert len(forward) == 3
    assert forward == backward


def test_list_messages_matches_listing_exactly(service):
    service.insert_message(BUYER_ID, SELLER_ID, None, "General question")
    service.insert_message(BUYER_ID, SELLER_ID, LISTING_ID, "About the benchy")
    service.insert_message(BUYER_ID, SELLER_ID, OTHER_LISTING_ID, "About the vase")
    service.insert_message(OTHER_BUYER_ID, SELLER_ID, None, "Someone else")

    general = service.list_messages(BUYER_ID, SELLER_ID, None)
    listing = service.list_messages(BUYER_ID, SELLER_ID, LISTING_ID)

    assert [m.content for m in general] == ["General question"]
    assert [m.content for m in listing] == ["About the benchy"]


def test_inserted_message_is_last_in_history(service):
    service.insert_message(BUYER_ID, SELLER_ID, LISTING_ID, "first")
    service.insert_message(SELLER_ID, BUYER_ID, LISTING_ID, "second")
    sent = service.insert_message(BUYER_ID, SELLER_ID, LISTING_ID, "  third  ")

    history = service.list_messages(SELLER_ID, BUYER_ID, LISTING_ID)

    assert history[-1].id == sent.id
    assert history[-1].content == "third"
    assert sent.is_read is False
    assert [m.created_at for m in history] == sorted(m.created_at for m in history)


def test_insert_rejects_self_addressed_message(service, marketplace):
    with pytest.raises(IdentityError):
        service.insert_message(BUYER_ID, BUYER_ID, LISTING_ID, "hello me")

    assert marketplace.query(Message).count() == 0


@pytest.mark.parametrize("content", ["", "   ", "\n\t"])
def test_insert_rejects_blank_content(service, marketplace, content):
    with pytest.raises(ValidationError):
        service.insert_message(BUYER_ID, SELLER_ID, LISTING_ID, content)

    assert marketplace.query(Message).count() == 0


def test_mark_read_only_flips_messages_addressed_to_reader(service, marketplace):
    to_seller = service.insert_message(BUYER_ID, SELLER_ID, LISTING_ID, "to seller")
    to_buyer = service.insert_message(SELLER_ID, BUYER_ID, LISTING_ID, "to buyer")

    updated = service.mark_read({to_seller.id, to_buyer.id, "missing-id"}, SELLER_ID)

    assert updated == 1
    marketplace.expire_all()
    assert marketplace.get(Message, to_seller.id).is_read is True
    assert marketplace.get(Message, to_buyer.id).is_read is False


def test_mark_read_is_idempotent(service):
    message = service.insert_message(BUYER_ID, SELLER_ID, None, "hi")

    assert service.mark_read([message.id], SELLER_ID) == 1
    assert service.mark_read([message.id], SELLER_ID) == 0
    assert service.mark_read([], SELLER_ID) == 0


def test_mark_read_writes_large_sets_in_batches(service, monkeypatch):
    ids = [service.insert_message(BUYER_ID, SELLER_ID, LISTING_ID, f"msg {i}").id for i in range(5)]
    monkeypatch.setattr(service.settings, "MARK_READ_BATCH_SIZE", 2)

    commits = []
    original_commit = service.db.commit

    def counting_commit():
        commits.append(1)
        original_commit()

    monkeypatch.setattr(service.db, "commit", counting_commit)

    assert service.mark_read(ids, SELLER_ID) == 5
    assert len(commits) == 3
    assert service.count_unread(SELLER_ID) == 0


def test_count_unread(service):
    service.insert_message(BUYER_ID, SELLER_ID, LISTING_ID, "one")
    service.insert_message(OTHER_BUYER_ID, SELLER_ID, None, "two")
    service.insert_message(SELLER_ID, BUYER_ID, LISTING_ID, "reply")

    assert service.count_unread(SELLER_ID) == 2
    assert service.count_unread(BUYER_ID) == 1


def test_store_failure_surfaces_as_transient_error(service, monkeypatch):
    def failing_commit():
        raise OperationalError("INSERT INTO messages", {}, Exception("database is locked"))

    monkeypatch.setattr(service.db, "commit", failing_commit)

    with pytest.raises(TransientStoreError):
        service.insert_message(BUYER_ID, SELLER_ID, LISTING_ID, "hello")

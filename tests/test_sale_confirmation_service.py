import pytest

from marketplace.exceptions import ConflictError, ValidationError
from marketplace.models import ConfirmationState, SaleConfirmation, UserRole
from marketplace.models.mixins import utcnow
from marketplace.services.sale_confirmation_service import SaleConfirmationService, state_of

from conftest import BUYER_ID, LISTING_ID, SELLER_ID


@pytest.fixture
def service(marketplace):
    return SaleConfirmationService(marketplace)


def confirm(service, role):
    return service.confirm(role, LISTING_ID, BUYER_ID, SELLER_ID)


def test_no_record_means_state_none(service):
    assert service.get_confirmation(LISTING_ID, BUYER_ID, SELLER_ID) is None
    assert state_of(None) == ConfirmationState.NONE


@pytest.mark.parametrize("first, second", [
    (UserRole.BUYER, UserRole.SELLER),
    (UserRole.SELLER, UserRole.BUYER),
])
def test_confirmations_complete_in_either_order(service, first, second):
    first_result = confirm(service, first)
    second_result = confirm(service, second)

    record = second_result.record
    assert first_result.completed_now is False
    assert second_result.completed_now is True
    assert record.sale_completed is True
    assert record.buyer_confirmed and record.seller_confirmed
    assert record.sale_completed_at is not None
    assert record.buyer_confirmed_at is not None
    assert record.seller_confirmed_at is not None
    assert record.state == ConfirmationState.BOTH_CONFIRMED


def test_seller_first_waits_on_buyer(service):
    result = confirm(service, UserRole.SELLER)

    record = result.record
    assert record.seller_confirmed is True
    assert record.buyer_confirmed is False
    assert record.sale_completed is False
    assert record.buyer_confirmed_at is None
    assert record.state == ConfirmationState.PENDING_BUYER


def test_buyer_first_waits_on_seller(service):
    result = confirm(service, UserRole.BUYER)

    assert result.record.state == ConfirmationState.PENDING_SELLER


def test_repeat_confirmation_is_a_no_op(service):
    first = confirm(service, UserRole.SELLER)
    confirmed_at = first.record.seller_confirmed_at
    version = first.record.version

    repeat = confirm(service, UserRole.SELLER)

    assert repeat.changed is False
    assert repeat.completed_now is False
    assert repeat.record.seller_confirmed_at == confirmed_at
    assert repeat.record.version == version
    assert repeat.record.state == ConfirmationState.PENDING_BUYER


def test_completed_sale_is_terminal(service):
    confirm(service, UserRole.BUYER)
    completed = confirm(service, UserRole.SELLER)
    completed_at = completed.record.sale_completed_at

    again = confirm(service, UserRole.BUYER)

    assert again.changed is False
    assert again.completed_now is False
    assert again.record.sale_completed_at == completed_at


def test_placeholder_then_single_confirmation(service, marketplace):
    placeholder = service.ensure_placeholder(LISTING_ID, BUYER_ID, SELLER_ID)
    assert placeholder.state == ConfirmationState.UNCONFIRMED
    assert not placeholder.buyer_confirmed and not placeholder.seller_confirmed

    result = confirm(service, UserRole.SELLER)

    assert result.record.id == placeholder.id
    assert result.completed_now is False
    assert result.record.state == ConfirmationState.PENDING_BUYER
    assert marketplace.query(SaleConfirmation).count() == 1


def test_ensure_placeholder_keeps_existing_record(service, marketplace):
    confirm(service, UserRole.SELLER)

    record = service.ensure_placeholder(LISTING_ID, BUYER_ID, SELLER_ID)

    assert record.seller_confirmed is True
    assert marketplace.query(SaleConfirmation).count() == 1


def _interfere_on_read(monkeypatch, service, change, times=None, guarded_only=True):
    """Let another session commit `change` right after each guarded read (or any read)."""
    original = service.get_confirmation
    calls = []

    def racing_get_confirmation(*args, **kwargs):
        record = original(*args, **kwargs)
        guarded = kwargs.get("refresh") or not guarded_only
        if guarded and (times is None or len(calls) < times):
            calls.append(1)
            change()
        return record

    monkeypatch.setattr(service, "get_confirmation", racing_get_confirmation)
    return calls


def test_concurrent_counterpart_confirmation_is_not_lost(service, session_factory, monkeypatch):
    service.ensure_placeholder(LISTING_ID, BUYER_ID, SELLER_ID)

    def seller_confirms_elsewhere():
        other = session_factory()
        try:
            result = SaleConfirmationService(other).confirm(UserRole.SELLER, LISTING_ID, BUYER_ID, SELLER_ID)
            assert result.completed_now is False
        finally:
            other.close()

    calls = _interfere_on_read(monkeypatch, service, seller_confirms_elsewhere, times=1)

    result = confirm(service, UserRole.BUYER)

    assert len(calls) == 1
    assert result.completed_now is True
    assert result.record.sale_completed is True
    assert result.record.seller_confirmed is True
    assert result.record.buyer_confirmed is True


def test_repeated_conflicts_surface_a_conflict_error(service, session_factory, monkeypatch):
    service.ensure_placeholder(LISTING_ID, BUYER_ID, SELLER_ID)

    def touch_elsewhere():
        other = session_factory()
        try:
            record = SaleConfirmationService(other).get_confirmation(LISTING_ID, BUYER_ID, SELLER_ID)
            record.updated_at = utcnow()
            other.commit()
        finally:
            other.close()

    calls = _interfere_on_read(monkeypatch, service, touch_elsewhere)

    with pytest.raises(ConflictError):
        confirm(service, UserRole.BUYER)

    assert len(calls) == service.settings.CONFIRM_MAX_ATTEMPTS
    stored = service.get_confirmation(LISTING_ID, BUYER_ID, SELLER_ID, refresh=True)
    assert stored.buyer_confirmed is False


def _seller_confirms_in(session_factory):
    def seller_confirms_elsewhere():
        other = session_factory()
        try:
            SaleConfirmationService(other).confirm(UserRole.SELLER, LISTING_ID, BUYER_ID, SELLER_ID)
        finally:
            other.close()
    return seller_confirms_elsewhere


def test_concurrent_first_confirmations_share_one_record(service, session_factory, marketplace, monkeypatch):
    # The buyer finds no record, then the seller creates it before the buyer's insert
    calls = _interfere_on_read(monkeypatch, service, _seller_confirms_in(session_factory), times=1)

    result = confirm(service, UserRole.BUYER)

    assert len(calls) == 1
    assert result.completed_now is True
    assert result.record.seller_confirmed is True
    assert result.record.buyer_confirmed is True
    assert marketplace.query(SaleConfirmation).count() == 1


def test_placeholder_losing_the_insert_race_returns_existing_record(
    service, session_factory, marketplace, monkeypatch
):
    calls = _interfere_on_read(
        monkeypatch, service, _seller_confirms_in(session_factory), times=1, guarded_only=False
    )

    record = service.ensure_placeholder(LISTING_ID, BUYER_ID, SELLER_ID)

    assert len(calls) == 1
    assert record.seller_confirmed is True
    assert record.state == ConfirmationState.PENDING_BUYER
    assert marketplace.query(SaleConfirmation).count() == 1


def test_confirming_unknown_listing_is_a_validation_error(service, marketplace):
    with pytest.raises(ValidationError):
        service.confirm(UserRole.BUYER, "no-such-listing", BUYER_ID, SELLER_ID)
    with pytest.raises(ValidationError):
        service.ensure_placeholder("no-such-listing", BUYER_ID, SELLER_ID)

    assert marketplace.query(SaleConfirmation).count() == 0

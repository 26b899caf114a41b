"""
Tests for booking lifecycle transitions.
"""

import pytest
from datetime import datetime, timedelta

from blueprints.bookings.services.lifecycle_service import (
    cancel_booking,
    check_in,
    check_out,
    create_booking,
    get_booking,
    mark_no_show,
    record_payment_event,
    sweep_no_shows,
)
from models.space import get_space_by_id
from utils.errors import (
    EligibilityError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)


NOW = datetime(2030, 6, 1, 8, 0)
START = datetime(2030, 6, 3, 10, 0)


@pytest.fixture
def confirmed_booking(app, space_factory):
    """Paid booking on Monday 2030-06-03 10:00-12:00."""
    space_id = space_factory()
    return create_booking(space_id, 'cust-1', '2030-06-03', '10:00', '12:00', payment_status='paid', now=NOW)


@pytest.fixture
def pending_booking(app, space_factory):
    """Unpaid booking on Monday 2030-06-03 14:00-15:00."""
    space_id = space_factory()
    return create_booking(space_id, 'cust-2', '2030-06-03', '14:00', '15:00', now=NOW)


class TestCreate:
    """Booking creation."""

    def test_unpaid_booking_starts_pending(self, pending_booking):
        assert pending_booking['status'] == 'pending'
        assert pending_booking['payment_status'] == 'pending'
        assert pending_booking['booking_code'].startswith('BK300603')
        assert len(pending_booking['booking_code']) == 14

    def test_paid_booking_starts_confirmed(self, confirmed_booking):
        history = get_booking(confirmed_booking['id'], include_history=True)['history']
        assert [h['to_status'] for h in history] == ['pending', 'confirmed']

    def test_allowed_transitions_reported(self, app, confirmed_booking, pending_booking):
        assert get_booking(confirmed_booking['id'])['allowed_transitions'] == ['cancelled', 'checked_in', 'no_show']
        assert get_booking(pending_booking['id'])['allowed_transitions'] == ['cancelled', 'confirmed']

    def test_pricing_breakdown_is_stored(self, confirmed_booking):
        assert confirmed_booking['total_amount'] == 1000.0
        assert confirmed_booking['currency'] == 'INR'
        assert confirmed_booking['pricing']['base_amount'] == 1000.0

    def test_booking_codes_are_unique(self, app, space_factory):
        space_id = space_factory()
        codes = {
            create_booking(space_id, 'cust-1', '2030-06-03', f'{hour:02d}:00', f'{hour + 1:02d}:00', now=NOW)['booking_code']
            for hour in range(9, 15)
        }
        assert len(codes) == 6

    def test_customer_is_required(self, app, space_factory):
        space_id = space_factory()
        with pytest.raises(ValidationError):
            create_booking(space_id, '  ', '2030-06-03', '10:00', '11:00', now=NOW)

    def test_unknown_space(self, app):
        with pytest.raises(NotFoundError):
            create_booking(404, 'cust-1', '2030-06-03', '10:00', '11:00', now=NOW)

    def test_space_statistics_updated(self, app, confirmed_booking):
        space = get_space_by_id(confirmed_booking['space_id'])
        assert space['total_bookings'] == 1
        assert space['total_revenue'] == 1000.0


class TestPayment:
    """Payment collaborator events."""

    def test_paid_confirms_pending(self, app, pending_booking):
        booking = record_payment_event(pending_booking['id'], 'paid')
        assert booking['status'] == 'confirmed'
        assert booking['payment_status'] == 'paid'

    def test_failed_keeps_pending(self, app, pending_booking):
        booking = record_payment_event(pending_booking['id'], 'failed')
        assert booking['status'] == 'pending'
        assert booking['payment_status'] == 'failed'

    def test_refunded_on_cancelled_booking(self, app, confirmed_booking):
        cancel_booking(confirmed_booking['id'], 'No longer needed', now=NOW)
        booking = record_payment_event(confirmed_booking['id'], 'refunded')
        assert booking['status'] == 'cancelled'
        assert booking['payment_status'] == 'refunded'

    def test_unknown_event(self, app, pending_booking):
        with pytest.raises(ValidationError):
            record_payment_event(pending_booking['id'], 'chargeback')

    def test_unknown_booking(self, app):
        with pytest.raises(NotFoundError):
            record_payment_event(12345, 'paid')


class TestCheckInWindow:
    """Check-in is accepted on [start - 15m, start + 30m]."""

    @pytest.mark.parametrize('offset', [
        timedelta(minutes=-15),
        timedelta(minutes=0),
        timedelta(minutes=30),
    ])
    def test_inside_window(self, app, confirmed_booking, offset):
        booking = check_in(confirmed_booking['id'], 'staff-1', now=START + offset)
        assert booking['status'] == 'checked_in'
        assert booking['checked_in_by'] == 'staff-1'
        assert booking['checked_in_at'] == START + offset

    def test_one_second_too_early(self, app, confirmed_booking):
        with pytest.raises(EligibilityError) as exc_info:
            check_in(confirmed_booking['id'], 'staff-1', now=START - timedelta(minutes=15, seconds=1))
        assert exc_info.value.code == 'too_early'

    def test_one_second_past_grace(self, app, confirmed_booking):
        with pytest.raises(EligibilityError) as exc_info:
            check_in(confirmed_booking['id'], 'staff-1', now=START + timedelta(minutes=30, seconds=1))
        assert exc_info.value.code == 'grace_elapsed'

    def test_configurable_grace(self, app, confirmed_booking):
        app.config['CHECKIN_GRACE_MINUTES'] = 45
        booking = check_in(confirmed_booking['id'], 'staff-1', now=START + timedelta(minutes=45))
        assert booking['status'] == 'checked_in'

    def test_pending_cannot_check_in(self, app, pending_booking):
        with pytest.raises(InvalidTransitionError) as exc_info:
            check_in(pending_booking['id'], 'staff-1', now=datetime(2030, 6, 3, 14, 0))
        assert exc_info.value.current_status == 'pending'
        assert exc_info.value.requested_status == 'checked_in'

    def test_staff_is_required(self, app, confirmed_booking):
        with pytest.raises(ValidationError):
            check_in(confirmed_booking['id'], '', now=START)


class TestCheckOut:
    """Check-out completes the booking."""

    def test_check_out_completes(self, app, confirmed_booking):
        check_in(confirmed_booking['id'], 'staff-1', now=START)
        booking = check_out(confirmed_booking['id'], 'staff-2', now=START + timedelta(hours=2))

        assert booking['status'] == 'completed'
        assert booking['checked_out_by'] == 'staff-2'
        assert booking['checked_out_at'] == START + timedelta(hours=2)

        history = get_booking(booking['id'], include_history=True)['history']
        assert [h['to_status'] for h in history] == [
            'pending', 'confirmed', 'checked_in', 'checked_out', 'completed'
        ]

    def test_pending_cannot_check_out(self, app, pending_booking):
        with pytest.raises(EligibilityError) as exc_info:
            check_out(pending_booking['id'], 'staff-1', now=START)
        assert isinstance(exc_info.value, InvalidTransitionError)
        assert exc_info.value.details == {'current_status': 'pending', 'requested_status': 'checked_out'}

    def test_completed_cannot_check_out_again(self, app, confirmed_booking):
        check_in(confirmed_booking['id'], 'staff-1', now=START)
        check_out(confirmed_booking['id'], 'staff-1', now=START + timedelta(hours=2))
        with pytest.raises(InvalidTransitionError):
            check_out(confirmed_booking['id'], 'staff-1', now=START + timedelta(hours=2))


class TestCancel:
    """Cancellation and refund requests."""

    def test_cancel_pending(self, app, pending_booking):
        result = cancel_booking(pending_booking['id'], 'Found another venue', cancelled_by='cust-2', now=NOW)
        booking = result['booking']

        assert booking['status'] == 'cancelled'
        assert booking['cancellation_reason'] == 'Found another venue'
        assert booking['cancelled_by'] == 'cust-2'
        assert booking['cancelled_at'] == NOW
        assert result['refund']['requested'] is True

    def test_refund_request_carries_policy(self, app, confirmed_booking):
        payments = app.extensions['payment_collaborator']
        cancel_booking(confirmed_booking['id'], 'Sick', now=NOW)

        assert len(payments.refund_requests) == 1
        request = payments.refund_requests[0]
        assert request['booking_code'] == confirmed_booking['booking_code']
        assert request['cancellation_policy'] == {'refund_percentage': 50}

    def test_custom_collaborator(self, app, confirmed_booking):
        calls = []

        class RecordingPayments:
            def request_refund(self, booking, cancellation_policy):
                calls.append((booking['id'], cancellation_policy))
                return {'requested': True, 'amount': 500}

        result = cancel_booking(confirmed_booking['id'], 'Sick', now=NOW, payments=RecordingPayments())
        assert calls == [(confirmed_booking['id'], {'refund_percentage': 50})]
        assert result['refund']['amount'] == 500

    def test_cannot_cancel_twice(self, app, pending_booking):
        cancel_booking(pending_booking['id'], 'First', now=NOW)
        with pytest.raises(InvalidTransitionError) as exc_info:
            cancel_booking(pending_booking['id'], 'Second', now=NOW)
        assert exc_info.value.current_status == 'cancelled'

    def test_cannot_cancel_checked_in(self, app, confirmed_booking):
        check_in(confirmed_booking['id'], 'staff-1', now=START)
        with pytest.raises(InvalidTransitionError):
            cancel_booking(confirmed_booking['id'], 'Too late', now=START)

    def test_cancel_updates_statistics(self, app, confirmed_booking):
        cancel_booking(confirmed_booking['id'], 'Sick', now=NOW)
        space = get_space_by_id(confirmed_booking['space_id'])
        assert space['total_bookings'] == 0
        assert space['total_revenue'] == 0


class TestNoShow:
    """No-show after the grace window."""

    def test_mark_no_show_after_grace(self, app, confirmed_booking):
        booking = mark_no_show(confirmed_booking['id'], now=START + timedelta(minutes=31))
        assert booking['status'] == 'no_show'

    def test_mark_no_show_inside_grace(self, app, confirmed_booking):
        with pytest.raises(EligibilityError) as exc_info:
            mark_no_show(confirmed_booking['id'], now=START + timedelta(minutes=30))
        assert exc_info.value.code == 'grace_not_elapsed'

    def test_pending_cannot_be_no_show(self, app, pending_booking):
        with pytest.raises(InvalidTransitionError):
            mark_no_show(pending_booking['id'], now=datetime(2030, 6, 3, 20, 0))

    def test_sweep_marks_only_elapsed_confirmed(self, app, space_factory):
        space_id = space_factory()
        early = create_booking(space_id, 'cust-1', '2030-06-03', '09:00', '10:00', payment_status='paid', now=NOW)
        late = create_booking(space_id, 'cust-2', '2030-06-03', '11:00', '12:00', payment_status='paid', now=NOW)
        unpaid = create_booking(space_id, 'cust-3', '2030-06-03', '13:00', '14:00', now=NOW)
        checked = create_booking(space_id, 'cust-4', '2030-06-03', '15:00', '16:00', payment_status='paid', now=NOW)
        check_in(checked['id'], 'staff-1', now=datetime(2030, 6, 3, 15, 0))

        marked = sweep_no_shows(now=datetime(2030, 6, 3, 16, 0))

        assert marked == [early['booking_code'], late['booking_code']]
        assert get_booking(unpaid['id'])['status'] == 'pending'
        assert get_booking(checked['id'])['status'] == 'checked_in'

    def test_no_show_cannot_check_in(self, app, confirmed_booking):
        mark_no_show(confirmed_booking['id'], now=START + timedelta(hours=1))
        with pytest.raises(InvalidTransitionError):
            check_in(confirmed_booking['id'], 'staff-1', now=START)

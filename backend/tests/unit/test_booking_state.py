"""
Unit tests for the booking attempt state machine.
"""

import pytest

from services.booking_service import BookingAttempt, BookingState


class TestBookingAttempt:

    def test_commit_path(self):
        attempt = BookingAttempt("test")

        attempt.advance(BookingState.CHECKING)
        attempt.advance(BookingState.COMMITTING)
        attempt.advance(BookingState.COMMITTED)

        assert attempt.state == BookingState.COMMITTED

    def test_blocked_at_check(self):
        attempt = BookingAttempt("test")

        attempt.advance(BookingState.CHECKING)
        attempt.advance(BookingState.BLOCKED)
        attempt.advance(BookingState.REPORTING)

        assert attempt.state == BookingState.REPORTING

    def test_lost_race_moves_committing_to_blocked(self):
        attempt = BookingAttempt("test")
        attempt.advance(BookingState.CHECKING)
        attempt.advance(BookingState.COMMITTING)

        attempt.advance(BookingState.BLOCKED)

        assert attempt.state == BookingState.BLOCKED

    @pytest.mark.parametrize("path", [
        [BookingState.COMMITTING],
        [BookingState.CHECKING, BookingState.COMMITTED],
        [BookingState.CHECKING, BookingState.BLOCKED, BookingState.COMMITTING],
        [BookingState.CHECKING, BookingState.COMMITTING, BookingState.COMMITTED, BookingState.CHECKING],
    ])
    def test_illegal_transitions_raise(self, path):
        attempt = BookingAttempt("test")

        with pytest.raises(RuntimeError):
            for state in path:
                attempt.advance(state)

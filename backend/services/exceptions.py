"""
Booking domain errors.

Every failure a booking operation can report is a ``ValueError`` subclass,
grouped under four kinds so the route layer can map them to status codes:

- ``NotFoundError``: entity missing or excluded by status
- ``InvalidInputError``: malformed or out-of-range input
- ``SchedulingConflictError``: overlapping booking for a user or team
- ``StateViolationError``: the current state forbids the operation

Anything that is not a ``BookingError`` (database failures, bugs) is an
infrastructure error and propagates unchanged.
"""


class BookingError(ValueError):
    """Base class for all booking domain errors."""

    default_message = "Booking operation failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)


# --- Kinds ---


class NotFoundError(BookingError):
    """Raised when a branch, room, team or user is missing or inactive."""

    default_message = "Not found"


class InvalidInputError(BookingError):
    """Raised when input is malformed or outside the allowed range."""

    default_message = "Invalid input"


class SchedulingConflictError(BookingError):
    """Raised when a booking overlaps an existing one."""

    default_message = "Scheduling conflict"


class StateViolationError(BookingError):
    """Raised when the current state of a room or team forbids the operation."""

    default_message = "Operation not allowed in the current state"


# --- Not found ---


class BranchNotFound(NotFoundError):
    default_message = "Branch not found or inactive"


class RoomNotFound(NotFoundError):
    default_message = "Room not found"


class TeamNotFound(NotFoundError):
    default_message = "Team not found or disbanded"


class UserNotFound(NotFoundError):
    default_message = "User not found"


class NotParticipant(NotFoundError):
    default_message = "You are not a participant in this room"


class NotTeamMember(NotFoundError):
    default_message = "User is not a member of this team"


# --- Invalid input ---


class InvalidTimeRange(InvalidInputError):
    default_message = "End time must be after start time"


class BookingInPast(InvalidInputError):
    default_message = "Cannot create a room in the past"


class OutsideOperatingHours(InvalidInputError):
    default_message = "Booking time must be within branch operating hours"


class InvalidOperatingHours(InvalidInputError):
    default_message = "Operating hours end must be after operating hours start"


class InvalidStatus(InvalidInputError):
    default_message = "Invalid status value"


# --- Conflicts ---


class TimeConflict(SchedulingConflictError):
    default_message = "You have a conflicting booking at this time"


class TeamConflict(SchedulingConflictError):
    default_message = "Your team has a conflicting team room booking at this time"


class TeamMembersConflict(SchedulingConflictError):
    default_message = (
        "One or more team members have conflicting individual room bookings at this time"
    )


# --- State violations ---


class RoomFull(StateViolationError):
    default_message = "Room is already full"


class AlreadyJoined(StateViolationError):
    default_message = "You have already joined this room"


class OwnerCannotLeave(StateViolationError):
    default_message = "Room owner cannot leave the room. Please cancel the room instead."


class NotOwner(StateViolationError):
    default_message = "Only the room owner can cancel the room"


class NotCaptain(StateViolationError):
    default_message = "Only the team captain can perform this action"


class NotCreatorCaptain(StateViolationError):
    default_message = "Only the creator team's captain can cancel the room"


class AlreadyMember(StateViolationError):
    default_message = "User is already a member of this team"


class TeamFull(StateViolationError):
    default_message = "Team roster is full"


class CannotRemoveCaptain(StateViolationError):
    default_message = "Cannot remove the team captain. Transfer captaincy first."


class AlreadyCaptain(StateViolationError):
    default_message = "You are already the captain of this team"


class NewCaptainNotMember(StateViolationError):
    default_message = "New captain must be a current member of the team"


class RoomAlreadyMatched(StateViolationError):
    default_message = "Room is already matched"


class CannotJoinOwnRoom(StateViolationError):
    default_message = "Cannot join your own team's room"


class TeamSizeMismatch(StateViolationError):
    default_message = "Team size mismatch"


class TeamNotFullRoster(StateViolationError):
    default_message = "Team must have a full roster"

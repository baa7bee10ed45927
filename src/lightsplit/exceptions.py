"""Custom exceptions for LightSplit."""


class LightSplitError(Exception):
    """Base exception for all LightSplit errors."""

    pass


class ConfigurationError(LightSplitError):
    """Raised when configuration is invalid or missing."""

    pass


class RoomNotFoundError(LightSplitError):
    """Raised when a room id does not match any live room."""

    def __init__(self, room_id: str, message: str | None = None):
        self.room_id = room_id
        super().__init__(message or f"Room '{room_id}' does not exist")


class PaymentNotFoundError(LightSplitError):
    """Raised when a payment record id does not exist in the room."""

    def __init__(self, room_id: str, record_id: str, message: str | None = None):
        self.room_id = room_id
        self.record_id = record_id
        super().__init__(
            message or f"Payment '{record_id}' does not exist in room '{room_id}'"
        )


class ValidationError(LightSplitError):
    """Base class for rejected writes."""

    pass


class InvalidAmountError(ValidationError):
    """Raised when an amount is non-numeric, non-positive or too precise."""

    pass


class InvalidMembersError(ValidationError):
    """Raised when a payer or involved member is not part of the room."""

    pass


class InvalidRoomError(ValidationError):
    """Raised when room attributes other than members are invalid."""

    pass


class RoundingError(LightSplitError):
    """Raised when balances don't sum to zero after share distribution."""

    pass

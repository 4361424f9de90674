class NotFoundError(ValueError):
    pass


class InsufficientFundsError(ValueError):
    pass


class RoomNotAvailableError(ValueError):
    pass


class NotParticipantError(ValueError):
    pass


class DuplicateChargeError(ValueError):
    pass

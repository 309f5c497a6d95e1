class SlotConflict(Exception):
    """The requested slot cannot be sold; the customer should pick another."""

    error_code = "slot_conflict"
    message = "Slot not available"

    def __init__(self, day=None, time=None):
        self.day = day
        self.time = time
        super().__init__(self.message)


class SlotAlreadyBooked(SlotConflict):
    error_code = "slot_already_booked"
    message = "This slot has already been booked, please choose another one"


class SlotNotOffered(SlotConflict):
    error_code = "slot_not_offered"
    message = "This slot is not open for booking"


class AvailabilityUnknown(Exception):
    """The booking sheet could not be read, so a slot cannot be vouched for."""

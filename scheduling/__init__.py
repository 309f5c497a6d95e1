from .errors import AvailabilityUnknown, SlotAlreadyBooked, SlotConflict, SlotNotOffered
from .slots import AvailabilityView, ConfirmedBooking, SlotGuard, generate_template, get_slot_guard

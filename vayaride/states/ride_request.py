"""FSM states for the rider booking flow."""

from aiogram.fsm.state import StatesGroup, State


class RideRequest(StatesGroup):
    """Rider trip request state machine."""
    ask_name = State()
    ask_contact = State()
    ask_dropoff = State()
    ask_location = State()

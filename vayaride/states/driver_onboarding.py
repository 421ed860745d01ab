"""FSM states for the driver registration flow."""

from aiogram.fsm.state import StatesGroup, State


class DriverOnboarding(StatesGroup):
    """Driver registration state machine — name → phone → docs, then PIN."""
    name = State()
    phone = State()
    docs = State()
    set_pin = State()


# Persisted registration_step → state to resume in
RESUME_STATES = {
    "name": DriverOnboarding.name,
    "phone": DriverOnboarding.phone,
    "docs": DriverOnboarding.docs,
}

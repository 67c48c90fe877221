"""Library helpers for the energy audit report application."""

from .section_state import SectionStateBridge  # noqa: F401
from .sections import SECTIONS, SECTION_A, SECTION_E  # noqa: F401

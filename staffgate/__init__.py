"""StaffGate: authorization and eligibility core of the staffing platform."""

__version__ = "0.1.0"

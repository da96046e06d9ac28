"""Schedule-driven controller and telemetry bridge for networked light fixtures."""

__version__ = "0.1.0"

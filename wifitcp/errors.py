from __future__ import annotations


class WifiTcpError(Exception):
    """Base class for harness and engine failures."""


class ConfigurationError(WifiTcpError, ValueError):
    """A parameter value is invalid or not supported by the engine."""


class EngineResourceError(WifiTcpError, RuntimeError):
    """The engine could not allocate the requested topology."""


class IncompleteTrialError(WifiTcpError, RuntimeError):
    """The engine stopped before reaching the requested stop time."""


class EngineContextError(WifiTcpError, RuntimeError):
    """A simulation context was opened while another one is still alive."""

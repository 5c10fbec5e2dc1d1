"""Exceptions that end a page or a run. Blocks and challenges are outcome values, not errors."""


class InputValidationError(ValueError):
    """Run parameters are missing or out of range. Raised before any network activity."""


class NavigationError(Exception):
    """A listing page could not be loaded after the navigation retry ladder."""


class SessionSetupError(Exception):
    """A browser or proxy session could not be created. Fatal for the run."""

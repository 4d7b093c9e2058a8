"""Exception hierarchy for CV Autofill."""

PAGE_UNREACHABLE_MESSAGE = "Could not communicate with the page. Please refresh and try again."


class AutofillError(Exception):
    """Base class for all autofill errors."""


class CommunicationError(AutofillError):
    """The automation target did not answer or could not be reached."""


class TargetUnreachableError(AutofillError):
    """Communication failed again after re-establishing the target."""

    def __init__(self, message: str = PAGE_UNREACHABLE_MESSAGE):
        super().__init__(message)
        self.message = message


class AutofillDisabledError(AutofillError):
    """Autofill is switched off in the stored preferences."""

    def __init__(self, message: str = "Autofill is disabled"):
        super().__init__(message)


class ProfileMissingError(AutofillError):
    """No stored profile to fill from."""

    def __init__(self, message: str = "No user profile found. Please complete your profile first."):
        super().__init__(message)


class TablesConfigError(AutofillError):
    """Classifier tables could not be loaded."""


class CVTooLargeError(AutofillError):
    """CV exceeds the configured storage limit."""

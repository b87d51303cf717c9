"""Error taxonomy.

Services raise these; the handlers registered in main.create_app() turn the
authentication errors into redirects and store errors into 503s. Inside the
broadcast hub store errors are logged and dropped.
"""


class VitrinaError(Exception):
    """Base class for application errors."""


class DuplicateUser(VitrinaError):
    """Registration with a username that already exists."""


class IncompleteRegistration(VitrinaError):
    """Registration form missing username, password or email."""


class InvalidCredentials(VitrinaError):
    """Unknown username or wrong password."""


class StoreUnavailable(VitrinaError):
    """Document store or relational sink could not be reached."""


class Unauthenticated(VitrinaError):
    """Protected resource requested without a valid session."""

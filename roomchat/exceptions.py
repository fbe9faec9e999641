"""Error taxonomy shared by the stores, the broadcast engine and the gateway.

Every error carries a stable ``code`` that is sent to clients verbatim.
"""


class ChatError(Exception):
    code = "error"
    default_message = "Request failed"

    def __init__(self, message: str = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class AuthError(ChatError):
    code = "unauthorized"
    default_message = "Authentication required"


class Unauthorized(AuthError):
    pass


class InvalidToken(AuthError):
    code = "invalid_token"
    default_message = "Invalid token"


class MalformedToken(InvalidToken):
    code = "malformed_token"
    default_message = "Malformed token"


class SignatureInvalid(InvalidToken):
    code = "signature_invalid"
    default_message = "Token signature verification failed"


class TokenExpired(AuthError):
    code = "token_expired"
    default_message = "Token has expired"


class CredentialError(ChatError):
    code = "credential_error"


class DuplicateUsername(CredentialError):
    code = "duplicate_username"
    default_message = "Username already taken"


class UserNotFound(CredentialError):
    code = "user_not_found"
    default_message = "User not found"


class WrongPassword(CredentialError):
    code = "wrong_password"
    default_message = "Wrong password"


class RoomError(ChatError):
    code = "room_error"


class NotInRoom(RoomError):
    code = "not_in_room"
    default_message = "Join the room before sending to it"


class StoreError(ChatError):
    code = "store_unavailable"
    default_message = "Storage is unavailable"


class StoreUnavailable(StoreError):
    pass


class StoreTimeout(StoreError):
    code = "store_timeout"
    default_message = "Storage operation timed out"


class SessionClosed(ChatError):
    """Raised when delivering to a session whose connection is gone."""

    code = "session_closed"
    default_message = "Session is closed"

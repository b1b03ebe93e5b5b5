# services/errors.py


class DataAccessError(Exception):
    """
    Raised when any storage lookup behind the player-status pipeline fails.

    Always fatal to the current call: no retries, no partial result.
    `status_code` is the severity class the request layer should surface.
    """

    status_code = 500

    def __init__(self, message: str = "Error fetching player record"):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {"error": "data_access_error", "message": self.message}

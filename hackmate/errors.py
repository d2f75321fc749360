# hackmate/errors.py


class StoreUnavailableError(RuntimeError):
    """Raised when the document store cannot be initialized or has been closed."""
    pass


class DocumentNotFoundError(LookupError):
    """Raised by update operations that target a missing document."""

    def __init__(self, collection: str, doc_id: str):
        super().__init__(f"No document to update: {collection}/{doc_id}")
        self.collection = collection
        self.doc_id = doc_id


class AIGatewayError(RuntimeError):
    """Raised when the AI gateway answers with an error or cannot be reached."""
    pass


class AuthError(Exception):
    pass


class InvalidCredentialsError(AuthError):
    pass


class EmailAlreadyRegisteredError(AuthError):
    pass

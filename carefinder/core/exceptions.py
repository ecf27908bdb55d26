"""
Custom Exceptions for CareFinder
"""


class CareFinderException(Exception):
    """Base exception for all CareFinder errors"""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


# Vector Exceptions
class VectorError(CareFinderException):
    """Vector contract violated"""

    pass


class DimensionMismatchError(VectorError):
    """Vector lengths are inconsistent for the requested operation"""

    pass


class InvalidDimensionError(VectorError):
    """Vector length differs from the collection dimension"""

    pass


# Store Exceptions
class UnknownEntityError(CareFinderException):
    """Entity was never registered in the embedding store"""

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"Unknown entity: {entity_id}")


# Embedding Generator Exceptions
class EmbeddingGeneratorUnavailableError(CareFinderException):
    """External embedding generator failed, timed out or is unreachable"""

    pass


# Query Exceptions
class InvalidQueryError(CareFinderException):
    """Query cannot be executed as given"""

    pass

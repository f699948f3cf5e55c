from abc import ABC, abstractmethod


class CacheStorageInterface(ABC):
    """
    Durable tier of an ArtifactCache. Holds exactly one JSON envelope.
    """

    @abstractmethod
    def read(self) -> dict | None:
        """
        Returns the stored envelope, or None if nothing is stored.

        Raises:
            Exception: If the stored data cannot be read or parsed.
        """
        pass

    @abstractmethod
    def write(self, envelope: dict) -> None:
        """
        Replaces the stored envelope.

        Raises:
            Exception: If the envelope cannot be persisted.
        """
        pass

    @abstractmethod
    def describe(self) -> str:
        """
        Returns a human readable location for log messages.
        """
        pass

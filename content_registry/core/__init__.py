"""Registration core: coordinator, encrypters and the publication pipeline."""

from .artifact import EncryptedArtifact, RegistrationOutcome
from .coordinator import FetchedArtifact, RegistrationCoordinator
from .encrypter import CommandEncrypter, Encrypter, StubEncrypter, get_encrypter
from .pipeline import PublicationPipeline, PublicationStatus, slugify

__all__ = [
    "CommandEncrypter",
    "EncryptedArtifact",
    "Encrypter",
    "FetchedArtifact",
    "PublicationPipeline",
    "PublicationStatus",
    "RegistrationCoordinator",
    "RegistrationOutcome",
    "StubEncrypter",
    "get_encrypter",
    "slugify",
]

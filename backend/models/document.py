"""Document data models."""
from dataclasses import dataclass


@dataclass
class KnowledgeDocument:
    """Represents a knowledge source file read by the cache builder."""
    filename: str
    text: str

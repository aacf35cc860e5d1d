"""Document loading service for knowledge source files."""
import csv
import io
import logging
import os
import re
from typing import List, Optional

import fitz  # PyMuPDF

from models.document import KnowledgeDocument

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = (".txt", ".md", ".json", ".csv", ".pdf")


class DocumentLoader:
    """Loads and normalizes text from the knowledge directory."""

    def __init__(self, docs_directory: str = "knowledge"):
        """
        Initialize DocumentLoader.

        Args:
            docs_directory: Path to directory containing knowledge files
        """
        self.docs_directory = docs_directory

    def load_documents(self) -> List[KnowledgeDocument]:
        """
        Load every supported file from the documents directory.

        Unsupported, unreadable and empty files are skipped.

        Returns:
            List of KnowledgeDocument objects sorted by filename
        """
        documents = []

        if not os.path.exists(self.docs_directory):
            logger.error(f"Knowledge directory not found: {self.docs_directory}")
            return documents

        files = [
            f for f in os.listdir(self.docs_directory)
            if os.path.splitext(f)[1].lower() in SUPPORTED_EXTENSIONS
        ]
        logger.info(f"Found {len(files)} knowledge files in {self.docs_directory}")

        for filename in sorted(files):
            filepath = os.path.join(self.docs_directory, filename)

            try:
                text = self._read_file(filepath)
            except Exception as e:
                logger.error(f"Error loading {filename}: {str(e)}", exc_info=True)
                continue

            if not text:
                logger.warning(f"Skipping {filename}: no text content")
                continue

            documents.append(KnowledgeDocument(filename=filename, text=text))
            logger.info(f"Loaded {filename}: {len(text)} characters")

        logger.info(f"Successfully loaded {len(documents)} documents")
        return documents

    def _read_file(self, filepath: str) -> Optional[str]:
        extension = os.path.splitext(filepath)[1].lower()

        if extension == ".pdf":
            with fitz.open(filepath) as pdf_document:
                raw = "\n".join(page.get_text() for page in pdf_document)
        elif extension == ".csv":
            with open(filepath, "r", encoding="utf-8", newline="") as f:
                rows = csv.reader(io.StringIO(f.read()))
                raw = "\n".join(", ".join(row) for row in rows if any(cell.strip() for cell in row))
        else:
            with open(filepath, "r", encoding="utf-8") as f:
                raw = f.read()

        return normalize_whitespace(raw)


def normalize_whitespace(text: str) -> str:
    """Collapse runs of two or more whitespace characters into one space."""
    return re.sub(r"\s\s+", " ", text).strip()

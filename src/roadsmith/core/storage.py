"""
File storage for saved road documents.
"""

import json
import logging
import shutil
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError as PydanticValidationError

from roadsmith.core.config import settings
from roadsmith.core.errors import PersistenceError
from roadsmith.models.document import SplineDocument

logger = logging.getLogger(__name__)

DOCUMENT_SUFFIX = ".json"


class DocumentStore:
    """
    Stores road documents as JSON files.

    This service handles:
    - Atomic writes (write to temp, then move)
    - Schema validation of loaded documents
    - Listing and deleting saved documents by name
    """

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        """
        Initialize the store.

        Args:
            base_dir: Directory holding the documents (defaults to settings.documents_dir)
        """
        self.base_dir = Path(base_dir or settings.documents_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"DocumentStore initialized with base_dir: {self.base_dir}")

    def path_for(self, name: str) -> Path:
        """Path of the document called ``name``."""
        return self.base_dir / f"{name}{DOCUMENT_SUFFIX}"

    def save(self, name: str, document: SplineDocument) -> Path:
        """
        Write a document atomically.

        Args:
            name: Document name, without suffix
            document: Document to save

        Returns:
            Path of the written file

        Raises:
            PersistenceError: If the document cannot be written
        """
        final_path = self.path_for(name)
        temp_path = final_path.with_suffix(final_path.suffix + ".tmp")

        try:
            temp_path.write_text(json.dumps(document.model_dump(mode="json"), indent=2))
            shutil.move(str(temp_path), str(final_path))
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save document {name}: {e}")
            temp_path.unlink(missing_ok=True)
            raise PersistenceError(
                f"Failed to save document: {e}", operation="save", file_path=str(final_path)
            ) from e

        logger.info(f"Saved document '{name}' with {len(document.curves)} curves to {final_path}")
        return final_path

    def load(self, name: str) -> SplineDocument:
        """
        Read and validate a document.

        Raises:
            PersistenceError: If the file is missing, unreadable or invalid
        """
        path = self.path_for(name)
        if not path.exists():
            raise PersistenceError(
                f"Document '{name}' not found", operation="load", file_path=str(path)
            )

        try:
            data = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to read document {name}: {e}")
            raise PersistenceError(
                f"Failed to read document: {e}", operation="load", file_path=str(path)
            ) from e

        try:
            document = SplineDocument.model_validate(data)
        except PydanticValidationError as e:
            logger.error(f"Document {name} failed validation: {e}")
            raise PersistenceError(
                f"Invalid document '{name}'",
                operation="load",
                file_path=str(path),
                details={"errors": e.errors(include_url=False)},
            ) from e

        logger.debug(f"Loaded document '{name}' from {path}")
        return document

    def delete(self, name: str) -> bool:
        """
        Delete a document.

        Returns:
            True if a file was removed
        """
        path = self.path_for(name)
        if not path.exists():
            logger.warning(f"Document not found: {path}")
            return False
        path.unlink()
        logger.info(f"Deleted document: {name}")
        return True

    def list_documents(self) -> List[str]:
        """Names of all saved documents, sorted."""
        return sorted(p.stem for p in self.base_dir.glob(f"*{DOCUMENT_SUFFIX}") if p.is_file())

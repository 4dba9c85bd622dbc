"""Catalog of example definitions and traces stored in a directory."""

from pathlib import Path
from typing import Dict, List, Optional, Union
from pydantic import BaseModel, Field

from .exceptions import DocumentFormatError, ExampleNotFoundError
from .loader import DocumentFormat, decode_json, detect_format
from .logging import get_logger

logger = get_logger(__name__)


class CatalogEntry(BaseModel):
    """A definition file together with the trace files recorded for it."""
    workflow: str = Field(..., description="Definition file name")
    name: str = Field(..., description="Display name")
    traces: List[str] = Field(default_factory=list, description="Trace files paired with this definition")


class CatalogListing(BaseModel):
    """Everything the catalog directory offers."""
    definitions: List[str] = Field(default_factory=list)
    traces: List[str] = Field(default_factory=list)
    pairings: List[CatalogEntry] = Field(default_factory=list)


def pairing_prefix(filename: str) -> str:
    """File stem without a trailing '_workflow', used to match trace files."""
    stem = Path(filename).stem
    if stem.endswith("_workflow"):
        stem = stem[:-len("_workflow")]
    return stem


class ExampleCatalog:
    """Discovers and serves example JSON documents from a directory."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def exists(self) -> bool:
        return self.directory.is_dir()

    def resolve(self, filename: str) -> Path:
        """
        Return the path of a catalog file.

        Raises:
            ExampleNotFoundError: If the file is missing or escapes the catalog directory
        """
        root = self.directory.resolve()
        candidate = (root / filename).resolve()
        if candidate.parent != root:
            raise ExampleNotFoundError(f"Example '{filename}' is outside the catalog", filename=filename)
        if not candidate.is_file():
            raise ExampleNotFoundError(f"Example '{filename}' not found", filename=filename)
        return candidate

    def scan(self) -> Dict[str, DocumentFormat]:
        """Detect the format of every JSON file in the directory."""
        formats: Dict[str, DocumentFormat] = {}
        if not self.exists():
            logger.warning(f"Example directory does not exist: {self.directory}")
            return formats

        for path in sorted(self.directory.glob("*.json")):
            try:
                formats[path.name] = detect_format(decode_json(path.read_bytes(), path.name))
            except (OSError, DocumentFormatError) as e:
                logger.warning(f"Skipping unreadable example {path.name}: {str(e)}")
                formats[path.name] = DocumentFormat.UNKNOWN
        return formats

    def listing(self) -> CatalogListing:
        """List definitions, traces and their pairings."""
        formats = self.scan()
        definitions = [name for name, fmt in formats.items() if fmt == DocumentFormat.DEFINITION]
        traces = [name for name, fmt in formats.items() if fmt == DocumentFormat.TRACE]

        pairings = {
            workflow: CatalogEntry(workflow=workflow, name=self._display_name(workflow))
            for workflow in definitions
        }
        for trace in traces:
            workflow = self.find_definition_for(trace, definitions)
            if workflow is not None:
                pairings[workflow].traces.append(trace)

        logger.debug(f"Catalog has {len(definitions)} definitions and {len(traces)} traces")
        return CatalogListing(definitions=definitions, traces=traces, pairings=list(pairings.values()))

    @staticmethod
    def find_definition_for(trace: str, definitions: List[str]) -> Optional[str]:
        """Pick the definition with the longest prefix that starts the trace name."""
        trace_stem = Path(trace).stem
        matches = [d for d in definitions if trace_stem.startswith(pairing_prefix(d))]
        if not matches:
            return None
        return max(matches, key=lambda d: len(pairing_prefix(d)))

    @staticmethod
    def _display_name(workflow: str) -> str:
        return pairing_prefix(workflow).replace("_", " ").title()

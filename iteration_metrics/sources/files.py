"""Iteration exports stored as JSON documents in a directory."""

import asyncio
import json
import logging
from pathlib import Path

from ..metrics.change_links import extract_change_link
from ..utils.keys import sanitize_key
from .models import Incident, Iteration, IterationData
from .provider import IterationDataProvider

logger = logging.getLogger(__name__)


def _with_change_link(incident: Incident) -> Incident:
    if incident.change_link is not None:
        return incident
    change_link = extract_change_link(incident.timeline_annotations)
    if change_link is None:
        return incident
    return incident.model_copy(update={"change_link": change_link})


class JsonDirectorySource(IterationDataProvider):
    """Reads ``<sanitized iteration id>.json`` files from a data directory.

    Each file holds one ``IterationData`` document with camelCase keys.
    """

    def __init__(self, data_dir: str | Path = "data/iterations"):
        """Initialize directory source.

        Args:
            data_dir: Directory containing iteration exports
        """
        self.data_dir = Path(data_dir)

    def get_file_path(self, iteration_id: str) -> Path:
        return self.data_dir / f"{sanitize_key(iteration_id)}.json"

    def load_iteration(self, iteration_id: str) -> IterationData:
        """Load and validate one iteration export.

        Incidents without a change link get one extracted from their
        timeline annotations.

        Raises:
            FileNotFoundError: If there is no export for the iteration
            pydantic.ValidationError: If the export does not match the schema
        """
        file_path = self.get_file_path(iteration_id)
        if not file_path.exists():
            raise FileNotFoundError(
                f"No export for iteration {iteration_id} at {file_path}"
            )

        with open(file_path, encoding="utf-8") as f:
            document = json.load(f)

        data = IterationData.model_validate(document)
        incidents = [_with_change_link(incident) for incident in data.incidents]
        logger.debug(
            "Loaded iteration %s: %d issues, %d merge requests, %d incidents",
            iteration_id,
            len(data.issues),
            len(data.merge_requests),
            len(incidents),
        )
        return data.model_copy(update={"incidents": incidents})

    def list_iterations(self) -> list[Iteration]:
        """Iteration windows of every export in the directory, by file name.

        Unreadable exports are logged and skipped.
        """
        if not self.data_dir.exists():
            return []
        iterations = []
        for file_path in sorted(self.data_dir.glob("*.json")):
            try:
                with open(file_path, encoding="utf-8") as f:
                    document = json.load(f)
                iterations.append(Iteration.model_validate(document["iteration"]))
            except (OSError, ValueError, KeyError, TypeError) as e:
                logger.warning("Skipping unreadable export %s: %s", file_path, e)
        return iterations

    async def fetch_iteration_data(self, iteration_id: str) -> IterationData:
        return await asyncio.to_thread(self.load_iteration, iteration_id)

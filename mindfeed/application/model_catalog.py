"""Loading of the model profile catalog from JSON data."""

import json
from importlib import resources
from pathlib import Path
from typing import List, Optional, Tuple, Union

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from ..constants import DEFAULT_MODEL_CATALOG_FILE
from ..domain.exceptions import ConfigurationError
from ..domain.models import ModelProfile
from ..logging import info, LogRecord, LogEvent

_CATALOG_ADAPTER = TypeAdapter(List[ModelProfile])


def load_model_catalog(path: Optional[Union[str, Path]] = None) -> Tuple[ModelProfile, ...]:
    """Load model profiles from ``path`` or from the packaged default table.

    Raises:
        ConfigurationError: If the file is missing, not valid JSON, does not
            match the profile schema, or repeats a model id.
    """
    source = str(path) if path else f"mindfeed/data/{DEFAULT_MODEL_CATALOG_FILE}"
    try:
        if path:
            raw = Path(path).read_text(encoding="utf-8")
        else:
            raw = (
                resources.files("mindfeed.data")
                .joinpath(DEFAULT_MODEL_CATALOG_FILE)
                .read_text(encoding="utf-8")
            )
    except OSError as e:
        raise ConfigurationError(
            f"Model catalog could not be read: {source}",
            config_key="model_catalog_path",
            details={"error": str(e)},
        ) from e

    try:
        profiles = parse_model_catalog(json.loads(raw))
    except json.JSONDecodeError as e:
        raise ConfigurationError(
            f"Model catalog is not valid JSON: {source}",
            config_key="model_catalog_path",
            details={"error": str(e)},
        ) from e

    info(
        LogRecord(
            event=LogEvent.MODEL_CATALOG.value,
            message=f"Loaded {len(profiles)} model profiles",
            data={"source": source, "model_ids": [p.id for p in profiles]},
        )
    )
    return profiles


def parse_model_catalog(data: object) -> Tuple[ModelProfile, ...]:
    """Validate already-decoded catalog data into model profiles."""
    try:
        profiles = _CATALOG_ADAPTER.validate_python(data)
    except PydanticValidationError as e:
        raise ConfigurationError(
            "Model catalog entries are invalid",
            config_key="model_catalog_path",
            details={"errors": e.errors(include_url=False)},
        ) from e

    seen = set()
    duplicates = []
    for profile in profiles:
        if profile.id in seen:
            duplicates.append(profile.id)
        seen.add(profile.id)
    if duplicates:
        raise ConfigurationError(
            f"Model catalog repeats ids: {', '.join(sorted(set(duplicates)))}",
            config_key="model_catalog_path",
            details={"duplicates": sorted(set(duplicates))},
        )

    return tuple(profiles)

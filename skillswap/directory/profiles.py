"""Profile file loading for bulk import.

A profile file is YAML or JSON holding either one profile mapping (with a
``user_id`` key) or a mapping with a ``users`` list of such mappings.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from skillswap.directory.models import ProfilePatch, validate_model
from skillswap.directory.repository import DirectoryRepository
from skillswap.errors import NotFoundError, ValidationError
from skillswap.utils.logging import get_logger

logger = get_logger("directory.profiles")


class ProfileLoader:
    """Loads profile patches from YAML or JSON files."""

    def load(self, path: Path | str) -> list[tuple[str, dict[str, Any]]]:
        """Load a profile file.

        Returns:
            (user_id, fields) pairs in file order, ready for patch_user.

        Raises:
            NotFoundError: If the file does not exist.
            ValidationError: If the file is malformed or an entry does not
                fit the profile schema.
        """
        profile_path = Path(path)
        if not profile_path.exists():
            raise NotFoundError(
                "profile file not found",
                operation="load_profiles",
                entity_id=str(profile_path),
            )

        if profile_path.suffix.lower() == ".json":
            data = self._load_json(profile_path)
        else:
            data = self._load_yaml(profile_path)

        entries = data["users"] if "users" in data else [data]
        if not isinstance(entries, list):
            raise self._invalid(profile_path, "'users' must be a list")

        patches = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise self._invalid(profile_path, "each profile must be a mapping")
            fields = dict(entry)
            user_id = str(fields.pop("user_id", "") or "").strip()
            if not user_id:
                raise self._invalid(profile_path, "each profile needs a user_id")
            patch = validate_model(
                ProfilePatch, fields, operation="load_profiles", entity_id=user_id
            )
            patches.append((user_id, patch.changes()))
        return patches

    def _load_yaml(self, path: Path) -> dict:
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise self._invalid(path, "invalid YAML") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise self._invalid(path, "profile file must be a mapping")
        return data

    def _load_json(self, path: Path) -> dict:
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise self._invalid(path, "invalid JSON") from e

        if not isinstance(data, dict):
            raise self._invalid(path, "profile file must be a mapping")
        return data

    @staticmethod
    def _invalid(path: Path, message: str) -> ValidationError:
        return ValidationError(message, operation="load_profiles", entity_id=str(path))


async def import_profiles(
    repository: DirectoryRepository,
    path: Path | str,
    loader: ProfileLoader | None = None,
) -> list[str]:
    """Create or update every profile in a file.

    The whole file is validated before anything is written. Each profile is
    then merged with patch_user, so new profiles receive the repository's
    initial time balance.

    Returns:
        The imported user ids, in file order.
    """
    patches = (loader or ProfileLoader()).load(path)
    imported = []
    for user_id, fields in patches:
        await repository.patch_user(user_id, fields)
        imported.append(user_id)

    logger.info(f"Imported {len(imported)} profiles from {path}")
    return imported

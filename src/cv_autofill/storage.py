"""Profile, CV and autofill-flag storage keyed by fixed string keys."""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

from cv_autofill.core.models import CVRecord, Profile
from cv_autofill.utils.logging import get_logger

logger = get_logger(__name__)


class StorageKey(str, Enum):
    USER_PROFILE = "userProfile"
    CV_DATA = "cvData"
    AUTOFILL_ENABLED = "autofillEnabled"


class InMemoryProfileStore:
    """Dictionary-backed store."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(data or {})

    def _read(self) -> Dict[str, Any]:
        return self._data

    def _write(self, data: Dict[str, Any]) -> None:
        self._data = data

    async def get_profile(self) -> Optional[Profile]:
        raw = self._read().get(StorageKey.USER_PROFILE.value)
        return Profile.model_validate(raw) if raw else None

    async def set_profile(self, profile: Profile) -> None:
        self._set(StorageKey.USER_PROFILE, profile.model_dump(mode="json", by_alias=True))

    async def get_cv(self) -> Optional[CVRecord]:
        raw = self._read().get(StorageKey.CV_DATA.value)
        return CVRecord.model_validate(raw) if raw else None

    async def set_cv(self, cv: CVRecord) -> None:
        self._set(StorageKey.CV_DATA, cv.model_dump(mode="json", by_alias=True))

    async def get_autofill_enabled(self) -> bool:
        value = self._read().get(StorageKey.AUTOFILL_ENABLED.value)
        return True if value is None else bool(value)

    async def set_autofill_enabled(self, enabled: bool) -> None:
        self._set(StorageKey.AUTOFILL_ENABLED, enabled)

    def _set(self, key: StorageKey, value: Any) -> None:
        data = dict(self._read())
        data[key.value] = value
        self._write(data)


class JsonProfileStore(InMemoryProfileStore):
    """Store persisted to a single JSON file."""

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)
        self.logger = logger.bind(component="profile_store", path=str(self.path))

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        return json.loads(self.path.read_text(encoding="utf-8"))

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp_path.replace(self.path)
        self.logger.debug("Store written", keys=sorted(data))

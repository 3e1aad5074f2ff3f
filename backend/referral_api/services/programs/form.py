"""State controller for the program link-settings form.

Holds a draft seeded from the program, validates fields when they lose
focus, tracks dirtiness against the last saved values and submits through an
injected update action. Rendering is left to the caller; notifications and
cache invalidation go through injected callables.
"""
from __future__ import annotations

import logging
import re
import threading
from concurrent.futures import Future
from typing import Any, Callable, Iterable, Mapping, Optional
from urllib.parse import urlparse

from ...models.program import COOKIE_LENGTH_OPTIONS
from .cache import program_cache_key
from .link_structure import LinkStructureOption, get_link_structure_options, is_link_structure_available
from .update import GENERIC_UPDATE_ERROR, ActionResult

log = logging.getLogger(__name__)

FIELDS = ("domain", "url", "cookie_length", "default_folder_id", "link_structure")
SUCCESS_MESSAGE = "Program updated successfully."

_HOSTNAME_RE = re.compile(r"^(?=.{1,253}$)([a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$")

Notify = Callable[[str, str], None]


def _value(source: Any, name: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def _coerce_cookie_length(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class LinkSettingsForm:
    def __init__(
        self,
        program: Any,
        *,
        workspace_id: str,
        action: Callable[[dict[str, Any]], ActionResult],
        notify: Notify,
        invalidate: Callable[[str], None],
    ) -> None:
        self.program_id: str = _value(program, "id")
        self.workspace_id = workspace_id
        self._action = action
        self._notify = notify
        self._invalidate = invalidate

        structure = _value(program, "link_structure")
        self.defaults: dict[str, Any] = {
            "domain": _value(program, "domain") or "",
            "url": _value(program, "url") or "",
            "cookie_length": _value(program, "cookie_length"),
            "default_folder_id": _value(program, "default_folder_id") or "",
            "link_structure": getattr(structure, "value", structure),
        }
        self.values: dict[str, Any] = dict(self.defaults)
        self.errors: dict[str, str] = {}

        self.folders: Optional[list[dict[str, Any]]] = None
        self.folders_loading = False

        self._submit_lock = threading.Lock()
        self.is_submitting = False

    # --- folders -------------------------------------------------------

    @property
    def folder_control_disabled(self) -> bool:
        return self.folders_loading

    def begin_folder_lookup(self) -> None:
        self.folders_loading = True

    def resolve_folder_lookup(self, folders: Optional[Iterable[Any]]) -> None:
        self.folders = [
            {"id": _value(folder, "id"), "name": _value(folder, "name")} for folder in (folders or [])
        ]
        self.folders_loading = False
        if "default_folder_id" in self.errors:
            self.blur("default_folder_id")

    def track_folder_lookup(self, future: "Future[Iterable[Any]]") -> None:
        """Disable the folder control until ``future`` settles."""
        self.begin_folder_lookup()

        def _done(fut: "Future[Iterable[Any]]") -> None:
            try:
                self.resolve_folder_lookup(fut.result())
            except Exception:
                log.warning("event=link_settings.folder_lookup_failed program_id=%s", self.program_id, exc_info=True)
                self.folders = []
                self.folders_loading = False

        future.add_done_callback(_done)

    # --- options -------------------------------------------------------

    @property
    def link_structure_options(self) -> list[LinkStructureOption]:
        # Examples follow the saved program, not the unsaved draft
        return get_link_structure_options(self.defaults.get("domain"), self.defaults.get("url"))

    @property
    def cookie_length_options(self) -> tuple[int, ...]:
        return COOKIE_LENGTH_OPTIONS

    # --- editing -------------------------------------------------------

    def set_value(self, field: str, value: Any) -> bool:
        """Update a draft field. Returns False when the change is ignored."""
        if field not in FIELDS:
            raise KeyError(field)
        if field == "link_structure":
            value = getattr(value, "value", value)
            if not is_link_structure_available(value):
                return False
        if field == "default_folder_id" and self.folder_control_disabled:
            return False
        if field == "cookie_length":
            coerced = _coerce_cookie_length(value)
            value = coerced if coerced is not None else value
        self.values[field] = value
        if field in self.errors:
            self.blur(field)
        return True

    def blur(self, field: str) -> Optional[str]:
        error = self._validate_field(field)
        if error:
            self.errors[field] = error
        else:
            self.errors.pop(field, None)
        return error

    def _validate_field(self, field: str) -> Optional[str]:
        value = self.values.get(field)
        if field == "domain":
            domain = (value or "").strip().lower()
            if not domain:
                return "Domain is required."
            if not _HOSTNAME_RE.match(domain):
                return "Enter a valid domain."
        elif field == "url":
            url = (value or "").strip()
            if not url:
                return "Destination URL is required."
            parsed = urlparse(url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                return "Enter a valid URL."
        elif field == "cookie_length":
            if value in (None, ""):
                return "Cookie length is required."
            if value not in COOKIE_LENGTH_OPTIONS:
                return "Select a valid cookie length."
        elif field == "default_folder_id":
            if value and self.folders is not None and value not in {f["id"] for f in self.folders}:
                return "Select a valid folder."
        elif field == "link_structure":
            if not is_link_structure_available(value or ""):
                return "Select an available link structure."
        return None

    def validate(self) -> bool:
        for field in FIELDS:
            self.blur(field)
        return not self.errors

    # --- state ---------------------------------------------------------

    @property
    def is_dirty(self) -> bool:
        return any(self.values[field] != self.defaults[field] for field in FIELDS)

    @property
    def is_valid(self) -> bool:
        return all(self._validate_field(field) is None for field in FIELDS)

    @property
    def can_submit(self) -> bool:
        return self.is_valid and self.is_dirty and not self.is_submitting

    def payload(self) -> dict[str, Any]:
        return {
            "workspaceId": self.workspace_id,
            "domain": (self.values["domain"] or "").strip().lower(),
            "url": (self.values["url"] or "").strip(),
            "cookieLength": self.values["cookie_length"],
            "defaultFolderId": self.values["default_folder_id"] or None,
            "linkStructure": self.values["link_structure"],
        }

    def submit(self) -> Optional[ActionResult]:
        """Send the draft to the update action.

        Returns None when nothing was sent: another submission is in flight,
        the draft is unchanged, or a field is invalid.
        """
        if not self._submit_lock.acquire(blocking=False):
            return None
        try:
            if not self.validate() or not self.is_dirty:
                return None
            self.is_submitting = True
            submitted = dict(self.values)
            try:
                result = self._action(self.payload())
            except Exception:
                log.exception("event=link_settings.submit_failed program_id=%s", self.program_id)
                result = ActionResult(server_error=None)
            finally:
                self.is_submitting = False

            if not result.ok:
                self._notify("error", result.server_error or GENERIC_UPDATE_ERROR)
                return result

            self._notify("success", SUCCESS_MESSAGE)
            self._invalidate(program_cache_key(self.program_id, self.workspace_id))
            # Keep the submitted values; they become the new clean state
            self.defaults = submitted
            return result
        finally:
            self._submit_lock.release()

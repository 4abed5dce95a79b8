from __future__ import annotations

from typing import Any, Callable

from smeta_admin.models import RequestState

EMPTY_TEXT = "Ma'lumot topilmadi."


def _items_of(payload: Any) -> list[dict[str, Any]]:
	if isinstance(payload, list):
		return [item for item in payload if isinstance(item, dict)]
	if isinstance(payload, dict):
		items = payload.get("data") or payload.get("items") or []
		if isinstance(items, list):
			return [item for item in items if isinstance(item, dict)]
	return []


def render_named_items(payload: Any) -> str:
	lines = []
	for item in _items_of(payload):
		name = str(item.get("name", "")).strip() or str(item.get("id", "?"))
		status = str(item.get("status", "")).strip()
		lines.append(f"{name}  [{status}]" if status else name)
	return "\n".join(lines) if lines else EMPTY_TEXT


def render_stats(payload: Any) -> str:
	if not isinstance(payload, dict) or not payload:
		return EMPTY_TEXT
	return "\n".join(f"{key}: {value}" for key, value in payload.items())


def panel_text(state: RequestState[Any], render: Callable[[Any], str]) -> str | None:
	"""Text for a resource panel's output box, or None to leave what is shown.

	The last rendered data stays on screen while reloading and after a failed
	reload; only a settled, successful empty result clears it.
	"""
	if state.data is not None:
		return render(state.data)
	if state.loading or state.error is not None:
		return None
	return ""

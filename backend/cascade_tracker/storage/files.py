"""Cascade persistence as markdown files with YAML frontmatter.

Cascades live in data/cascades/{YYYY-MM-DD}/{cascade_id}.md. The frontmatter
holds the complete structured record; the body is a readable rendering of
the same data and is never parsed back.
"""

import logging
import re
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

import yaml

from cascade_tracker.generation.models import Cascade, CascadeStatus, Effect
from cascade_tracker.storage.state import atomic_write_text, dump_yaml, get_data_dir

logger = logging.getLogger(__name__)

FRONTMATTER_DELIMITER = "---\n"

_CASCADE_ID_RE = re.compile(r"[A-Za-z0-9_-]+")


# ============================================================================
# Helper Functions
# ============================================================================


def _get_cascades_dir() -> Path:
    return get_data_dir() / "cascades"


def _ensure_date_dir(base_dir: Path, date: datetime) -> Path:
    """Ensure date-based subdirectory exists (YYYY-MM-DD format)."""
    date_dir = base_dir / date.strftime("%Y-%m-%d")
    date_dir.mkdir(parents=True, exist_ok=True)
    return date_dir


def _format_markdown_with_frontmatter(frontmatter_data: dict, body: str) -> str:
    return f"{FRONTMATTER_DELIMITER}{dump_yaml(frontmatter_data)}{FRONTMATTER_DELIMITER}\n{body}"


def _split_frontmatter(content: str, file_path: Path) -> tuple[dict, str]:
    """Split on the delimiter lines only; "---" inside values or the body is content."""
    if not content.startswith(FRONTMATTER_DELIMITER):
        raise ValueError(f"Invalid frontmatter in {file_path}")

    frontmatter, separator, body = content[len(FRONTMATTER_DELIMITER) :].partition(
        "\n" + FRONTMATTER_DELIMITER
    )
    if not separator:
        raise ValueError(f"Could not parse frontmatter in {file_path}")

    return yaml.safe_load(frontmatter) or {}, body.lstrip("\n")


def _effect_rows(effects: list[Effect]) -> str:
    if not effects:
        return "_None_\n"
    rows = [
        "| Event | Direction | Magnitude | Confidence | Timing |",
        "|-------|-----------|-----------|------------|--------|",
    ]
    for effect in effects:
        rows.append(
            f"| [{effect.market_name}]({effect.market_url}) | {effect.direction} | "
            f"{effect.magnitude_percent:.0f}% | {effect.confidence:.0%} | {effect.timing} |"
        )
    return "\n".join(rows) + "\n"


def _render_body(cascade: Cascade) -> str:
    mechanisms = "\n".join(
        f"- **{e.market_name}**: {e.reason}" for e in cascade.all_effects
    ) or "_None_"
    risks = "\n".join(f"- {risk}" for risk in cascade.key_risks) or "_None_"

    return f"""# {cascade.name}

{cascade.description}

**Trigger**: [{cascade.trigger.title}]({cascade.trigger.url})
**Domain**: {cascade.domain} | **Severity**: {cascade.severity}/10

## Thesis

{cascade.impact_thesis}

## Primary Effects (0-15 min)

{_effect_rows(cascade.primary_effects)}
## Secondary Effects (15 min - 2 hrs)

{_effect_rows(cascade.secondary_effects)}
## Tertiary Effects (2-24 hrs)

{_effect_rows(cascade.tertiary_effects)}
## Mechanisms

{mechanisms}

## Key Risks

{risks}

## Takeaway

{cascade.educational_takeaway}
"""


# ============================================================================
# Public API
# ============================================================================


def generate_cascade_id() -> str:
    """Generate unique cascade ID with casc_ prefix."""
    return f"casc_{uuid4().hex[:8]}"


def save_cascade(cascade: Cascade) -> Path:
    """Save cascade to data/cascades/{date}/{id}.md.

    Raises:
        OSError: If file write fails
    """
    date_dir = _ensure_date_dir(_get_cascades_dir(), cascade.created_at)
    file_path = date_dir / f"{cascade.id}.md"

    content = _format_markdown_with_frontmatter(
        cascade.model_dump(mode="json"), _render_body(cascade)
    )
    atomic_write_text(file_path, content)

    logger.info(f"Saved cascade to {file_path}")
    return file_path


def load_cascade_from_file(file_path: Path) -> Cascade:
    frontmatter, _ = _split_frontmatter(file_path.read_text(encoding="utf-8"), file_path)
    return Cascade(**frontmatter)


def find_cascade_file(cascade_id: str) -> Path | None:
    """Find a cascade file by ID, searching date directories newest first."""
    if not _CASCADE_ID_RE.fullmatch(cascade_id):
        return None

    cascades_dir = _get_cascades_dir()
    if not cascades_dir.exists():
        return None

    for file_path in sorted(cascades_dir.glob(f"*/{cascade_id}.md"), reverse=True):
        return file_path
    return None


def load_cascade(cascade_id: str) -> Cascade:
    """Raises FileNotFoundError if no cascade has this ID."""
    file_path = find_cascade_file(cascade_id)
    if file_path is None:
        raise FileNotFoundError(f"Cascade not found: {cascade_id}")
    return load_cascade_from_file(file_path)


def list_cascades(
    status: CascadeStatus | None = None,
    limit: int | None = None,
) -> list[Cascade]:
    """List cascades newest first, optionally filtered by status."""
    cascades_dir = _get_cascades_dir()
    if not cascades_dir.exists():
        return []

    cascades = []
    for file_path in cascades_dir.glob("*/*.md"):
        try:
            cascade = load_cascade_from_file(file_path)
        except Exception as e:
            logger.warning(f"Error reading {file_path}: {e}")
            continue
        if status is None or cascade.status == status:
            cascades.append(cascade)

    cascades.sort(key=lambda c: c.created_at, reverse=True)
    return cascades[:limit] if limit is not None else cascades


def mark_cascade_resolved(cascade_id: str, resolved_at: datetime | None = None) -> bool:
    """Set a LIVE cascade to RESOLVED. Returns False if missing or already resolved."""
    file_path = find_cascade_file(cascade_id)
    if file_path is None:
        logger.warning(f"Cascade not found: {cascade_id}")
        return False

    content = file_path.read_text(encoding="utf-8")
    frontmatter, body = _split_frontmatter(content, file_path)
    if frontmatter.get("status") == "RESOLVED":
        return False

    frontmatter["status"] = "RESOLVED"
    frontmatter["resolved_at"] = (resolved_at or datetime.now(timezone.utc)).isoformat()
    atomic_write_text(file_path, _format_markdown_with_frontmatter(frontmatter, body))

    logger.info(f"Marked cascade {cascade_id} as RESOLVED")
    return True


def resolve_cascades_for_event(event_slug: str, resolved_at: datetime | None = None) -> list[str]:
    """Mark every LIVE cascade triggered by ``event_slug`` as RESOLVED."""
    resolved = []
    for cascade in list_cascades(status="LIVE"):
        if cascade.trigger.slug != event_slug:
            continue
        if mark_cascade_resolved(cascade.id, resolved_at):
            resolved.append(cascade.id)
    return resolved

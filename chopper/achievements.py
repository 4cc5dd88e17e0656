"""
Achievement evaluation and catalog loading.

Each requirement kind maps to a Requirement in REQUIREMENTS: how to read
the observed value from a session snapshot (plus the player's lifetime
stats) and whether the threshold is a floor ("at least") or a ceiling
("at most"). The table covers every RequirementKind; UNKNOWN maps to None
and is skipped, so catalogs may carry definitions for kinds this engine
does not implement.

Catalog format (YAML or JSON), a list of definitions:

    - id: score_rookie
      name: Rookie Lumberjack
      requirement: {type: score, value: 1000}
    - id: speed_demon
      kind: reaction_time_ceiling
      threshold: 200

Lifetime stats passed to evaluate() must be the totals from finished
sessions, not including the session being evaluated.
"""
import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from models import (
    AchievementDefinition,
    AchievementProgress,
    PlayerLifetimeStats,
    RequirementKind,
    SessionSnapshot,
)
from chopper.errors import CatalogError
from chopper.logging import get_logger

log = get_logger('achievements')

DEFAULT_CATALOG_PATH = Path(__file__).parent / 'data' / 'achievements.yaml'


@dataclass(frozen=True)
class Requirement:
    """How one requirement kind is measured.

    Attributes:
        observe: Reads the observed value; None means "not defined yet"
        ceiling: If True the observed value must be <= threshold, else >=
    """
    observe: Callable[[SessionSnapshot, PlayerLifetimeStats], Optional[float]]
    ceiling: bool = False


REQUIREMENTS: Dict[RequirementKind, Optional[Requirement]] = {
    RequirementKind.CUMULATIVE_SCORE: Requirement(
        lambda s, lifetime: s.score),
    RequirementKind.COMBO_THRESHOLD: Requirement(
        lambda s, lifetime: max(s.combo_count, s.best_combo)),
    RequirementKind.SINGLE_SESSION_CHOPS: Requirement(
        lambda s, lifetime: s.total_chops),
    RequirementKind.LIFETIME_CHOPS: Requirement(
        lambda s, lifetime: lifetime.total_chops + s.total_chops),
    RequirementKind.REACTION_TIME_CEILING: Requirement(
        lambda s, lifetime: s.fastest_resolution_ms, ceiling=True),
    RequirementKind.UNKNOWN: None,
}

def measure(
    definition: AchievementDefinition,
    snapshot: SessionSnapshot,
    lifetime: PlayerLifetimeStats,
) -> Optional[float]:
    """Progress value for one definition, capped at the threshold.

    Floor kinds report ``min(observed, threshold)``. Ceiling kinds are
    all-or-nothing: ``threshold`` once satisfied, 0 before.

    Returns:
        None if the kind is unknown
    """
    requirement = REQUIREMENTS[definition.kind]
    if requirement is None:
        return None

    observed = requirement.observe(snapshot, lifetime)
    if observed is None:
        return 0.0
    if requirement.ceiling:
        return float(definition.threshold) if observed <= definition.threshold else 0.0
    return float(min(observed, definition.threshold))


def evaluate(
    catalog: List[AchievementDefinition],
    progress: Dict[str, AchievementProgress],
    snapshot: SessionSnapshot,
    lifetime: Optional[PlayerLifetimeStats] = None,
    now: Optional[datetime] = None,
) -> List[str]:
    """Update ``progress`` in place and return the ids unlocked by this call.

    Already-unlocked records are never touched. Progress never moves
    backwards, so evaluating an older snapshot is harmless.

    Args:
        catalog: Achievement definitions
        progress: Map of achievement id to progress (updated in place)
        snapshot: Current (or final) session snapshot
        lifetime: Player totals from previous sessions
        now: Unlock timestamp (default: datetime.now())

    Returns:
        Ids newly unlocked, in catalog order
    """
    lifetime = lifetime or PlayerLifetimeStats()
    unlocked: List[str] = []

    for definition in catalog:
        current = progress.get(definition.id)
        if current is not None and current.unlocked:
            continue

        value = measure(definition, snapshot, lifetime)
        if value is None:
            log.trace("Skipping %s: unknown requirement kind %r", definition.id, definition.raw_kind)
            continue

        previous = current.progress if current is not None else 0.0
        value = max(previous, value)

        if value >= definition.threshold:
            progress[definition.id] = AchievementProgress(
                achievement_id=definition.id,
                progress=definition.threshold,
                unlocked=True,
                unlocked_at=now or datetime.now(),
            )
            unlocked.append(definition.id)
            log.info("Achievement unlocked: %s", definition.id)
        elif current is None or value > previous:
            progress[definition.id] = AchievementProgress(
                achievement_id=definition.id,
                progress=value,
            )

    return unlocked


def _load_data_file(path: Path) -> object:
    """Load catalog data from a YAML or JSON file."""
    if not path.exists():
        raise FileNotFoundError(f"No catalog file found: {path}")
    with open(path, 'r') as f:
        if path.suffix == '.json':
            return json.load(f)
        return yaml.safe_load(f)


def parse_catalog(data: object, source: Union[str, Path] = '<data>') -> List[AchievementDefinition]:
    """Validate raw catalog data into definitions.

    Raises:
        CatalogError: If the data is not a list of valid definitions or ids repeat
    """
    if isinstance(data, dict) and 'achievements' in data:
        data = data['achievements']
    if not isinstance(data, list):
        raise CatalogError(f"Catalog {source} must be a list of achievements")

    definitions = []
    seen = set()
    for i, entry in enumerate(data):
        if not isinstance(entry, dict):
            raise CatalogError(f"Catalog {source} entry {i} is not a mapping")
        try:
            definition = AchievementDefinition.model_validate(entry)
        except ValidationError as e:
            raise CatalogError(f"Catalog {source} entry {i}: {e}") from e
        if definition.id in seen:
            raise CatalogError(f"Catalog {source} repeats achievement id {definition.id!r}")
        seen.add(definition.id)
        definitions.append(definition)
    return definitions


def load_catalog(path: Optional[Union[str, Path]] = None) -> List[AchievementDefinition]:
    """Load an achievement catalog (default: the bundled catalog)."""
    path = Path(path) if path else DEFAULT_CATALOG_PATH
    try:
        data = _load_data_file(path)
    except yaml.YAMLError as e:
        raise CatalogError(f"Invalid YAML in {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogError(f"Invalid JSON in {path}: {e}") from e
    definitions = parse_catalog(data, source=path)
    log.debug("Loaded %d achievements from %s", len(definitions), path)
    return definitions

"""
Task catalog built from the time tracking metadata.

Flattens the nested project -> task structure into a mapping of
selectable names to catalog entries.
"""

import difflib
from typing import Dict

from .errors import TaskNotFoundError
from .logging_utils import log_warning
from .models import CatalogEntry, ParentRef, TimeTrackingMeta


Catalog = Dict[str, CatalogEntry]


def flatten_catalog(meta: TimeTrackingMeta) -> Catalog:
    """
    Flatten projects and tasks into a name -> CatalogEntry mapping.

    A project without tasks yields one entry for the project itself. A
    project with tasks yields one entry per task, each referencing the
    project as its parent. On duplicate names the later entry wins.

    Args:
        meta: Time tracking metadata scraped at login

    Returns:
        Mapping in platform order
    """
    catalog: Catalog = {}

    for project in meta.projects:
        if not project.tasks:
            entries = [CatalogEntry(name=project.name, id=project.id)]
        else:
            parent = ParentRef(id=project.id, name=project.name)
            entries = [CatalogEntry(name=task.name, id=task.id, parent=parent) for task in project.tasks]

        for entry in entries:
            if entry.name in catalog:
                log_warning(
                    f"Duplicate task name '{entry.name}': "
                    f"'{catalog[entry.name].label()}' replaced by '{entry.label()}'"
                )
            catalog[entry.name] = entry

    return catalog


def find_catalog_entry(catalog: Catalog, name: str) -> CatalogEntry:
    """
    Look up a catalog entry by name.

    An exact match wins; otherwise a unique case-insensitive match is
    accepted.

    Raises:
        TaskNotFoundError: If no single entry matches
    """
    if name in catalog:
        return catalog[name]

    folded = [key for key in catalog if key.casefold() == name.casefold()]
    if len(folded) == 1:
        return catalog[folded[0]]

    suggestions = difflib.get_close_matches(name, list(catalog), n=3)
    message = f"Unknown task: '{name}'"
    if suggestions:
        message += f" (did you mean: {', '.join(suggestions)}?)"
    raise TaskNotFoundError(message)

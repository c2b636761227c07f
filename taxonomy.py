"""Subspecialty taxonomy: folder mapping, timeline files and duplicate priority."""

from __future__ import annotations

from enum import Enum
from pathlib import PurePath


class Subspecialty(str, Enum):
    FOOT_AND_ANKLE = "FOOT_AND_ANKLE"
    HAND = "HAND"
    HIP_AND_KNEE = "HIP_AND_KNEE"
    SHOULDER_AND_ELBOW = "SHOULDER_AND_ELBOW"
    SPINE = "SPINE"
    SPORTS_MEDICINE = "SPORTS_MEDICINE"
    TRAUMA = "TRAUMA"
    ONCOLOGY = "ONCOLOGY"
    PEDIATRICS = "PEDIATRICS"
    GENERAL = "GENERAL"
    TEXTBOOKS = "TEXTBOOKS"
    PRESENTATIONS = "PRESENTATIONS"
    RESEARCH = "RESEARCH"
    OITE = "OITE"


def parse_subspecialty(raw: str) -> Subspecialty:
    """Parse CLI or review-file input such as ``foot-and-ankle`` or ``TRAUMA``.

    Raises ValueError for anything outside the closed set.
    """
    value = raw.strip().upper().replace("-", "_").replace(" ", "_")
    try:
        return Subspecialty(value)
    except ValueError:
        raise ValueError(f"Unknown subspecialty: {raw!r}") from None


# Library folder name -> subspecialty. Exact match is tried before a
# case-insensitive pass.
FOLDER_SUBSPECIALTY_MAP: dict[str, Subspecialty] = {
    "Foot and Ankle": Subspecialty.FOOT_AND_ANKLE,
    "Foot_and_Ankle": Subspecialty.FOOT_AND_ANKLE,
    "FootAndAnkle": Subspecialty.FOOT_AND_ANKLE,
    "Hand": Subspecialty.HAND,
    "Hip and Knee": Subspecialty.HIP_AND_KNEE,
    "Hip_and_Knee": Subspecialty.HIP_AND_KNEE,
    "HipAndKnee": Subspecialty.HIP_AND_KNEE,
    "Hip": Subspecialty.HIP_AND_KNEE,
    "Knee": Subspecialty.HIP_AND_KNEE,
    "Shoulder and Elbow": Subspecialty.SHOULDER_AND_ELBOW,
    "Shoulder_and_Elbow": Subspecialty.SHOULDER_AND_ELBOW,
    "ShoulderAndElbow": Subspecialty.SHOULDER_AND_ELBOW,
    "Shoulder": Subspecialty.SHOULDER_AND_ELBOW,
    "Elbow": Subspecialty.SHOULDER_AND_ELBOW,
    "Spine": Subspecialty.SPINE,
    "Sports Medicine": Subspecialty.SPORTS_MEDICINE,
    "Sports_Medicine": Subspecialty.SPORTS_MEDICINE,
    "SportsMedicine": Subspecialty.SPORTS_MEDICINE,
    "Sports": Subspecialty.SPORTS_MEDICINE,
    "Trauma": Subspecialty.TRAUMA,
    "Oncology": Subspecialty.ONCOLOGY,
    "Pediatrics": Subspecialty.PEDIATRICS,
    "Pediatric": Subspecialty.PEDIATRICS,
    "Textbooks": Subspecialty.TEXTBOOKS,
    "Textbook": Subspecialty.TEXTBOOKS,
    "Presentations": Subspecialty.PRESENTATIONS,
    "Presentation": Subspecialty.PRESENTATIONS,
    "Research": Subspecialty.RESEARCH,
    "General": Subspecialty.GENERAL,
}

_FOLDER_MAP_LOWER: dict[str, Subspecialty] = {
    name.lower(): sub for name, sub in FOLDER_SUBSPECIALTY_MAP.items()
}

# Curated timeline documents -> subspecialty of the entries they hold.
TIMELINE_FILE_SUBSPECIALTY_MAP: dict[str, Subspecialty] = {
    "FOOT AND ANKLE.docx": Subspecialty.FOOT_AND_ANKLE,
    "FOOT _ ANKLE.docx": Subspecialty.FOOT_AND_ANKLE,
    "GENERAL ARTICLES.docx": Subspecialty.GENERAL,
    "HAND TO ELBOW.docx": Subspecialty.HAND,
    "HIP.docx": Subspecialty.HIP_AND_KNEE,
    "KNEE.docx": Subspecialty.HIP_AND_KNEE,
    "MSK ONCOLOGY.docx": Subspecialty.ONCOLOGY,
    "PEDIATRICS.docx": Subspecialty.PEDIATRICS,
    "ROTATOR CUFF.docx": Subspecialty.SHOULDER_AND_ELBOW,
    "SHOULDER ARTHROPLASTY.docx": Subspecialty.SHOULDER_AND_ELBOW,
    "SHOULDER INSTABILITY.docx": Subspecialty.SHOULDER_AND_ELBOW,
    "SHOULDER.docx": Subspecialty.SHOULDER_AND_ELBOW,
    "SPINE.docx": Subspecialty.SPINE,
    "TRAUMA.docx": Subspecialty.TRAUMA,
}

TIMELINE_SKIP_FILES: frozenset[str] = frozenset({"MUSINGS.docx"})

# Lower rank wins when choosing which duplicate copy to keep; the catch-all
# GENERAL folder ranks after every specialty folder.
SUBSPECIALTY_PRIORITY: dict[Subspecialty, int] = {
    Subspecialty.TRAUMA: 1,
    Subspecialty.HAND: 2,
    Subspecialty.FOOT_AND_ANKLE: 3,
    Subspecialty.SHOULDER_AND_ELBOW: 4,
    Subspecialty.HIP_AND_KNEE: 5,
    Subspecialty.SPINE: 6,
    Subspecialty.SPORTS_MEDICINE: 7,
    Subspecialty.PEDIATRICS: 8,
    Subspecialty.ONCOLOGY: 9,
    Subspecialty.GENERAL: 10,
}
UNRANKED_PRIORITY = 99

# Folder-name fragments that never hold journal articles.
NON_ARTICLE_FOLDER_TOKENS: tuple[str, ...] = ("textbook", "oite", "presentation", "timeline")


def priority_rank(subspecialty: Subspecialty) -> int:
    return SUBSPECIALTY_PRIORITY.get(subspecialty, UNRANKED_PRIORITY)


def folder_subspecialty(folder_name: str) -> Subspecialty | None:
    """Map one folder name to a subspecialty, or None when unmapped."""
    mapped = FOLDER_SUBSPECIALTY_MAP.get(folder_name)
    if mapped is not None:
        return mapped
    return _FOLDER_MAP_LOWER.get(folder_name.lower())


def subspecialty_from_path(relative_path: str) -> Subspecialty:
    """Return the subspecialty of the first mapped folder in the path."""
    for part in PurePath(relative_path.replace("\\", "/")).parts:
        mapped = folder_subspecialty(part)
        if mapped is not None:
            return mapped
    return Subspecialty.GENERAL


def is_non_article_folder(folder_name: str) -> bool:
    lowered = folder_name.lower()
    return any(token in lowered for token in NON_ARTICLE_FOLDER_TOKENS)


def document_type(filename: str, relative_path: str) -> str:
    """Infer the catalog document type from extension and location."""
    suffix = PurePath(filename).suffix.lower()
    lowered = relative_path.lower()
    if suffix in (".pptx", ".ppt"):
        return "PRESENTATION"
    if "textbook" in lowered:
        return "TEXTBOOK"
    if "presentation" in lowered:
        return "PRESENTATION"
    if "research" in lowered:
        return "RESEARCH"
    return "ARTICLE"

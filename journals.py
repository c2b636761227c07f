"""Journal lookup tables and abbreviation mapping.

Every table here is ordered on purpose; the extractors walk them top-down and
take the first hit.
"""

from __future__ import annotations

import re

# Abbreviations recognised inside filenames. Longer / more specific tokens come
# first so the whole-name fallback scan does not stop on a shorter prefix.
_FILENAME_JOURNALS_BASE: list[str] = [
    "JAAOS", "JBJS", "AJSM", "CORR", "JSES", "KSSTA", "BJSM",
    "NEJM", "NEMJ", "JAMA", "JTIIC", "CRMM",
    "ESJ", "TSJ", "SJ", "Spine", "SpineJ",
    "HandClin", "Hand Clin",
    "BJPS", "AnnPlastSurg", "Ann Plast Surg", "PRS",
    "JHS", "FAI", "JOT", "BJJ", "JPO", "BMJ", "CSS",
    "Arthroscopy", "Lancet",
    "JNS", "JBJS-A", "JBJS-B", "ICL",
    "JOrthop", "J Orthopaedics",
    "JArthroplasty", "JAnat",
]

# (abbreviation, phrase variants) searched in extracted text. Full names first,
# bare abbreviations last. "hand clin" sits above CORR so that "clin orthop"
# phrases inside a Hand Clinics header never win.
CONTENT_JOURNAL_PRIORITY: list[tuple[str, list[str]]] = [
    ("JAnat", ["journal of anatomy", "j. anat.", "j.anat.", "j anat"]),
    ("JAAOS", [
        "journal of the american academy of orthopaedic surgeons",
        "j am acad orthop surg",
        "american academy of orthopaedic surgeons",
    ]),
    ("JSES", ["journal of shoulder and elbow surgery", "j shoulder elbow surg", "shoulder elbow surg"]),
    ("AJSM", ["american journal of sports medicine", "am j sports med"]),
    ("JBJS", ["journal of bone and joint surgery", "j bone joint surg", "bone and joint surgery"]),
    ("HandClin", ["hand clinics", "hand clin"]),
    ("CORR", ["clinical orthopaedics and related research", "clin orthop relat res"]),
    ("Arthroscopy", [
        "arthroscopy: the journal",
        "arthroscopy journal",
        "arthroscopy the journal of arthroscopic",
    ]),
    ("JOT", ["journal of orthopaedic trauma", "j orthop trauma", "orthopaedic trauma association"]),
    ("JHS", ["journal of hand surgery", "j hand surg"]),
    ("FAI", ["foot and ankle international", "foot ankle int"]),
    ("BJJ", ["bone and joint journal", "bone joint j"]),
    ("JArthroplasty", ["journal of arthroplasty", "j arthroplasty"]),
    ("JPO", ["journal of pediatric orthopaedics", "j pediatr orthop"]),
    ("KSSTA", ["knee surgery sports traumatology", "knee surg sports traumatol"]),
    ("BJSM", ["british journal of sports medicine", "br j sports med"]),
    ("ESJ", ["european spine journal", "eur spine j"]),
    ("Spine", ["spine journal", "the spine journal"]),
    ("NEJM", ["new england journal of medicine", "n engl j med"]),
    ("JAMA", ["journal of the american medical association"]),
    ("Lancet", ["the lancet", "lancet"]),
    ("BJPS", ["british journal of plastic surgery", "br j plast surg"]),
    ("AnnPlastSurg", ["annals of plastic surgery", "ann plast surg"]),
    ("PRS", ["plastic and reconstructive surgery", "plast reconstr surg"]),
    ("JAAOS", ["jaaos"]),
    ("JSES", ["jses"]),
    ("AJSM", ["ajsm"]),
    ("JBJS", ["jbjs"]),
    ("CORR", ["corr"]),
    ("JOT", ["jot"]),
    ("HandClin", ["handclin"]),
    ("BJPS", ["bjps"]),
    ("JOrthop", ["journal of orthopaedics", "j orthopaedics", "j orthop"]),
]

# Alias phrases used by the record-linkage matcher when comparing a timeline
# journal token against a document's searchable text.
JOURNAL_ALIASES: dict[str, list[str]] = {
    "JBJS": ["jbjs", "journal of bone and joint surgery", "j bone joint surg"],
    "AJSM": ["ajsm", "american journal of sports medicine", "am j sports med"],
    "CORR": ["corr", "clinical orthopaedics", "clin orthop"],
    "JHS": ["jhs", "journal of hand surgery", "j hand surg"],
    "FAI": ["fai", "foot and ankle international", "foot ankle int"],
    "Spine": ["spine"],
    "Arthroscopy": ["arthroscopy", "arthrosc"],
    "JAAOS": ["jaaos", "journal of the american academy", "j am acad orthop"],
    "JOT": ["jot", "journal of orthopaedic trauma", "j orthop trauma"],
    "BJJ": ["bjj", "bone joint journal", "bone joint j"],
    "KSSTA": ["kssta", "knee surgery sports traumatology"],
    "JPO": ["jpo", "journal of pediatric orthopaedics", "j pediatr orthop"],
    "JSES": ["jses", "journal of shoulder and elbow surgery", "j shoulder elbow"],
}

# Full / ISO journal names -> abbreviation, for names returned by lookups.
JOURNAL_ABBREVIATIONS: dict[str, str] = {
    "Journal of Bone and Joint Surgery": "JBJS",
    "Journal of Bone and Joint Surgery American": "JBJS",
    "Journal of Bone and Joint Surgery British": "JBJS",
    "J Bone Joint Surg": "JBJS",
    "J Bone Joint Surg Am": "JBJS",
    "J Bone Joint Surg Br": "JBJS",
    "American Journal of Sports Medicine": "AJSM",
    "Am J Sports Med": "AJSM",
    "Clinical Orthopaedics and Related Research": "CORR",
    "Clin Orthop Relat Res": "CORR",
    "Journal of Hand Surgery": "JHS",
    "J Hand Surg Am": "JHS",
    "J Hand Surg Eur": "JHS",
    "Foot and Ankle International": "FAI",
    "Foot Ankle Int": "FAI",
    "Spine": "Spine",
    "Spine Journal": "SpineJ",
    "The Spine Journal": "SpineJ",
    "Arthroscopy": "Arthroscopy",
    "Arthroscopy The Journal of Arthroscopic and Related Surgery": "Arthroscopy",
    "Journal of the American Academy of Orthopaedic Surgeons": "JAAOS",
    "J Am Acad Orthop Surg": "JAAOS",
    "Journal of Orthopaedic Trauma": "JOT",
    "J Orthop Trauma": "JOT",
    "Bone and Joint Journal": "BJJ",
    "Bone Joint J": "BJJ",
    "Knee Surgery Sports Traumatology Arthroscopy": "KSSTA",
    "Journal of Pediatric Orthopaedics": "JPO",
    "Journal of Shoulder and Elbow Surgery": "JSES",
    "British Journal of Sports Medicine": "BJSM",
    "Hand Clinics": "HandClin",
    "British Journal of Plastic Surgery": "BJPS",
    "Annals of Plastic Surgery": "AnnPlastSurg",
    "Plastic and Reconstructive Surgery": "PRS",
    "European Spine Journal": "ESJ",
    "Journal of Trauma and Acute Care Surgery": "JTIIC",
    "Current Reviews in Musculoskeletal Medicine": "CRMM",
    "Current Surgery Reports": "CSS",
    "Journal of Arthroplasty": "JArthroplasty",
    "New England Journal of Medicine": "NEJM",
    "N Engl J Med": "NEJM",
    "JAMA": "JAMA",
    "Journal of the American Medical Association": "JAMA",
    "Lancet": "Lancet",
    "The Lancet": "Lancet",
    "BMJ": "BMJ",
    "British Medical Journal": "BMJ",
    "Journal of Orthopaedics": "JOrthop",
    "Journal of Anatomy": "JAnat",
}

# Loose containment fallbacks for lookup journal names not in the tables above.
# Longer phrases first. Their abbreviations are only accepted in the journal
# slot of a filename; the whole-name scan would hit ordinary title words.
_EXTRA_JOURNAL_PATTERNS: dict[str, str] = {
    "current opinion in anaesthesiology": "CurrOpinAnesth",
    "journal of pain": "JPain",
    "journal of orthopaedics": "JOrthop",
    "pain": "Pain",
    "injury": "Injury",
    "knee": "Knee",
    "hand": "Hand",
    "spine": "Spine",
}

# Terms that mark a lookup hit as coming from a non-clinical journal.
NON_MEDICAL_JOURNAL_TERMS: tuple[str, ...] = (
    "business", "economics", "management", "finance", "marketing",
    "accounting", "cuadernos", "review of", "journal of business",
)

# Credential / generational suffixes stripped from author names.
AUTHOR_SUFFIXES: tuple[str, ...] = (
    ", MD", ", M.D.", ", PhD", ", Ph.D.", ", DO", ", D.O.", ", FRCS", ", FACS",
    ", Jr.", ", Jr", ", Sr.", ", Sr", ", III", ", II",
    " MD", " PhD", " DO", " FRCS", " FACS",
)

# Characters that are unsafe in filenames or typographic noise. "_" is the
# field separator of canonical names so it never survives inside a title.
FILENAME_REPLACEMENTS: dict[str, str] = {
    ":": "-",
    "/": "-",
    "\\": "-",
    "?": "",
    "*": "",
    '"': "",
    "<": "",
    ">": "",
    "|": "",
    "&": "and",
    "‘": "",
    "’": "",
    "“": "",
    "”": "",
    "–": "-",
    "—": "-",
    "…": "",
    ",": "",
    ";": "",
    "(": "",
    ")": "",
    "[": "",
    "]": "",
    "{": "",
    "}": "",
    "_": " ",
}


def _build_known_journals() -> list[str]:
    seen: dict[str, None] = dict.fromkeys(_FILENAME_JOURNALS_BASE)
    for abbrev, _ in CONTENT_JOURNAL_PRIORITY:
        seen.setdefault(abbrev, None)
    for abbrev in JOURNAL_ABBREVIATIONS.values():
        seen.setdefault(abbrev, None)
    # Stable sort: longest token first, original order among equals.
    return sorted(seen, key=len, reverse=True)


FILENAME_JOURNALS: list[str] = _build_known_journals()

# Every token map_journal_to_abbrev can return is recognised in the journal
# slot of a filename.
_FILENAME_JOURNALS_UPPER: dict[str, str] = {
    j.upper(): j for j in [*FILENAME_JOURNALS, *_EXTRA_JOURNAL_PATTERNS.values()]
}


def canonical_filename_journal(token: str) -> str | None:
    """Return the canonical spelling of a known filename journal token."""
    return _FILENAME_JOURNALS_UPPER.get(token.strip().upper())


def find_journal_token(name: str) -> str | None:
    """Scan a whole filename for a delimited known journal token."""
    for journal in FILENAME_JOURNALS:
        pattern = rf"(?:^|[\s_\-]){re.escape(journal)}(?:[\s_\-.]|$)"
        if re.search(pattern, name, flags=re.IGNORECASE):
            return journal
    return None


def find_journal_in_text(search_text: str) -> str | None:
    """Walk the content priority table over lowercased text.

    Multi-word phrases match as substrings; single-token abbreviations must sit
    on word boundaries so that e.g. "jot" inside "jotted" does not count.
    """
    for abbrev, phrases in CONTENT_JOURNAL_PRIORITY:
        for phrase in phrases:
            if " " in phrase or "." in phrase:
                if phrase in search_text:
                    return abbrev
            elif re.search(rf"\b{re.escape(phrase)}\b", search_text):
                return abbrev
    return None


def map_journal_to_abbrev(journal_name: str) -> str | None:
    """Map a full journal name (e.g. from a lookup) to a short abbreviation.

    Returns None for names none of the tables know, so callers fall back to
    other metadata sources instead of inventing a token.
    """
    if not journal_name:
        return None

    direct = JOURNAL_ABBREVIATIONS.get(journal_name)
    if direct:
        return direct

    lower = journal_name.lower()
    for name, abbrev in JOURNAL_ABBREVIATIONS.items():
        if name.lower() == lower:
            return abbrev

    for abbrev, phrases in CONTENT_JOURNAL_PRIORITY:
        if any(" " in p and p in lower for p in phrases):
            return abbrev

    for pattern, abbrev in _EXTRA_JOURNAL_PATTERNS.items():
        if pattern in lower:
            return abbrev
    return None


def is_non_medical_journal(journal_name: str) -> bool:
    lower = journal_name.lower()
    return any(term in lower for term in NON_MEDICAL_JOURNAL_TERMS)

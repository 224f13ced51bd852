# -*- coding: utf-8 -*-
"""
Subject and class resolution for chat text.

A message is matched, in order, against the names of the student's own
classes, the global standardized exams, and a closed vocabulary of school
subjects. A vocabulary subject is then looked up in the class list by name
or subject field.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
import typing as t

from study_planner.models import ClassRecord


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Subject:
    """A vocabulary entry. Aliases are matched as whole words."""
    id: str
    display: str
    category: str
    aliases: tuple[str, ...]


SUBJECTS: tuple[Subject, ...] = (
    Subject("calculus", "Calculus", "Math", ("calculus", "calc")),
    Subject("algebra", "Algebra", "Math", ("algebra",)),
    Subject("geometry", "Geometry", "Math", ("geometry",)),
    Subject("statistics", "Statistics", "Math", ("statistics", "stats")),
    Subject("trigonometry", "Trigonometry", "Math", ("trigonometry", "trig")),
    Subject("math", "Math", "Math", ("math", "maths", "mathematics")),
    Subject("biology", "Biology", "Science", ("biology", "bio")),
    Subject("chemistry", "Chemistry", "Science", ("chemistry", "chem")),
    Subject("physics", "Physics", "Science", ("physics",)),
    Subject("computer-science", "Computer Science", "Computer Science",
            ("computer science", "comp sci", "compsci", "cs", "programming", "coding")),
    Subject("science", "Science", "Science", ("science",)),
    Subject("english", "English", "English", ("english", "literature", "lit")),
    Subject("history", "History", "History", ("history", "apush")),
    Subject("geography", "Geography", "Social Studies", ("geography",)),
    Subject("economics", "Economics", "Social Studies", ("economics", "econ")),
    Subject("psychology", "Psychology", "Social Studies", ("psychology", "psych")),
    Subject("spanish", "Spanish", "Languages", ("spanish",)),
    Subject("french", "French", "Languages", ("french",)),
)

# Externally administered exams never appear in the class list
GLOBAL_EXAMS: dict[str, str] = {
    "sat": "SAT",
    "act": "ACT",
    "gaokao": "Gaokao",
    "ielts": "IELTS",
    "toefl": "TOEFL",
    "gre": "GRE",
    "gmat": "GMAT",
    "lsat": "LSAT",
    "mcat": "MCAT",
}

# Exam names that are also everyday words ("I sat down", "act now")
AMBIGUOUS_EXAMS = {"sat", "act"}
_EXAM_CONTEXT = r"(?:tests?|exams?|prep|practice)"


def find_global_exams(text: str) -> list[tuple[int, int, str]]:
    """(start, end, key) of each global exam named in ``text``, in order.

    "sat" and "act" only count when written in capitals or right next to a
    test word, as in "sat practice test".
    """
    text = text or ""
    found = []
    for key in GLOBAL_EXAMS:
        for match in re.finditer(rf"\b{key}\b", text, re.IGNORECASE):
            if key in AMBIGUOUS_EXAMS and not (
                    match.group(0).isupper()
                    or re.match(rf"\s+{_EXAM_CONTEXT}\b", text[match.end():], re.IGNORECASE)
                    or re.search(rf"\b{_EXAM_CONTEXT}\s+$", text[:match.start()], re.IGNORECASE)
            ):
                continue
            found.append((match.start(), match.end(), key))
            break
    return sorted(found)


NAME_CORRECTIONS = {
    "calclus": "calculus", "calculas": "calculus", "calulus": "calculus", "calcules": "calculus",
    "histroy": "history", "hisotry": "history", "histry": "history",
    "biolgy": "biology", "bilogy": "biology", "biolagy": "biology",
    "chemestry": "chemistry", "chemisty": "chemistry", "chemistery": "chemistry",
    "phyiscs": "physics", "physcis": "physics", "phsyics": "physics",
    "englsih": "english", "engish": "english",
    "spansih": "spanish", "spanihs": "spanish",
    "algbra": "algebra", "algebr": "algebra",
    "geomtry": "geometry", "geometery": "geometry",
    "statistcs": "statistics", "statisitcs": "statistics",
    "mathmatics": "mathematics", "mathamatics": "mathematics",
    "pyschology": "psychology", "psycology": "psychology",
    "economcis": "economics",
}

ACRONYMS = {"ap", "ib", "cs", "us", "ab", "bc", "ii", "iii", "iv", "apush", "ela", "hl", "sl"}

_NAME_PREFIXES = re.compile(
    r"^(?:(?:it'?s|it is|its called|it's called|called|the class is|the class name is|"
    r"the full name is|full name is|name is|the name is|oh|ok|okay|sure|yes)[\s,:]+)+",
    re.IGNORECASE,
)


@dataclass
class SubjectMatch:
    """Outcome of resolving a message against the vocabulary and class list."""
    subject_id: t.Optional[str] = None
    display: t.Optional[str] = None  # "Math", or the exam name
    category: t.Optional[str] = None
    class_name: t.Optional[str] = None
    is_global_exam: bool = False

    @property
    def found(self) -> bool:
        return self.subject_id is not None

    @property
    def needs_class(self) -> bool:
        """A subject was named but there is no class for it and it is not a global exam."""
        return self.found and self.class_name is None and not self.is_global_exam

    @property
    def display_name(self) -> t.Optional[str]:
        """The name used in task titles."""
        return self.class_name or (self.display if self.is_global_exam else None)


class SubjectResolver:
    """Match free text against the subject vocabulary and the student's classes."""

    def resolve(self, text: str, classes: t.Sequence[ClassRecord]) -> SubjectMatch:
        lower = (text or "").lower()

        own_class = self._match_class_name(lower, classes)
        if own_class is not None:
            return self._class_match(own_class)

        exams = find_global_exams(text)
        if exams:
            return self._exam_match(exams[0][2])

        subject = self._match_vocabulary(lower)
        if subject is None:
            return SubjectMatch()
        return self._subject_match(subject, classes)

    def resolve_all(self, text: str, classes: t.Sequence[ClassRecord]) -> list[SubjectMatch]:
        """Every class, global exam and subject named in ``text``, in order of mention.

        Class names claim their words first, so "AP Calculus" is one match and
        not also "Calculus". Subjects that land on the same class collapse.
        """
        lower = (text or "").lower()
        claimed: list[tuple[int, int, SubjectMatch]] = []

        def claim(start: int, end: int, match: SubjectMatch) -> None:
            if not any(start < taken_end and taken_start < end for taken_start, taken_end, _ in claimed):
                claimed.append((start, end, match))

        for record in sorted(classes, key=lambda c: len(c.name), reverse=True):
            name = record.name.strip().lower()
            found = re.search(rf"(?<!\w){re.escape(name)}(?!\w)", lower) if name else None
            if found:
                claim(found.start(), found.end(), self._class_match(record))
        for start, end, key in find_global_exams(text):
            claim(start, end, self._exam_match(key))

        hits = []
        for subject in SUBJECTS:
            for alias in subject.aliases:
                for found in re.finditer(rf"\b{re.escape(alias)}\b", lower):
                    hits.append((found.start(), found.end(), subject))
        # earliest first, the longer alias on a tie
        for start, end, subject in sorted(hits, key=lambda hit: (hit[0], hit[0] - hit[1])):
            claim(start, end, self._subject_match(subject, classes))

        matches: list[SubjectMatch] = []
        seen = set()
        for _, _, match in sorted(claimed, key=lambda item: item[0]):
            key = match.class_name or match.subject_id
            if key not in seen:
                seen.add(key)
                matches.append(match)
        return matches

    def find_class(self, subject: Subject, classes: t.Sequence[ClassRecord]) -> t.Optional[ClassRecord]:
        """First class whose name or subject field contains one of the subject's words."""
        patterns = [re.compile(rf"\b{re.escape(alias)}") for alias in subject.aliases + (subject.id,)]
        for record in classes:
            fields = f"{record.name}\n{record.subject}".lower()
            if any(p.search(fields) for p in patterns):
                return record
        return None

    def subject_for_name(self, name: str) -> t.Optional[Subject]:
        """Vocabulary subject mentioned in a class name, if any."""
        return self._match_vocabulary((name or "").lower())

    def correct_name(self, text: str) -> str:
        """Clean up a class name the user typed: 'its ap calclus' -> 'AP Calculus'."""
        cleaned = _NAME_PREFIXES.sub("", (text or "").strip())
        cleaned = re.sub(r"\s+class$", "", cleaned.strip(" .!?\"'"), flags=re.IGNORECASE)
        words = []
        for word in cleaned.split():
            fixed = NAME_CORRECTIONS.get(word.lower(), word)
            if fixed.lower() in ACRONYMS:
                fixed = fixed.upper()
            elif fixed.islower():
                fixed = fixed.capitalize()
            words.append(fixed)
        return " ".join(words)

    def _match_class_name(self, lower: str, classes: t.Sequence[ClassRecord]) -> t.Optional[ClassRecord]:
        # longest name first so "AP Calculus BC" wins over "AP Calculus"
        for record in sorted(classes, key=lambda c: len(c.name), reverse=True):
            name = record.name.strip().lower()
            if name and re.search(rf"(?<!\w){re.escape(name)}(?!\w)", lower):
                return record
        return None

    def _match_vocabulary(self, lower: str) -> t.Optional[Subject]:
        best: t.Optional[tuple[int, int, Subject]] = None
        for subject in SUBJECTS:
            for alias in subject.aliases:
                match = re.search(rf"\b{re.escape(alias)}\b", lower)
                if match is None:
                    continue
                # earliest mention wins, the longer alias on a tie
                key = (match.start(), -len(alias))
                if best is None or key < best[:2]:
                    best = (key[0], key[1], subject)
        return best[2] if best else None

    def _class_match(self, record: ClassRecord) -> SubjectMatch:
        subject = self.subject_for_name(record.name) or self.subject_for_name(record.subject)
        return SubjectMatch(
            subject_id=subject.id if subject else f"class:{record.id}",
            display=subject.display if subject else record.name,
            category=record.subject or (subject.category if subject else None),
            class_name=record.name,
        )

    def _exam_match(self, key: str) -> SubjectMatch:
        return SubjectMatch(subject_id=key, display=GLOBAL_EXAMS[key], category="Exam", is_global_exam=True)

    def _subject_match(self, subject: Subject, classes: t.Sequence[ClassRecord]) -> SubjectMatch:
        matched = self.find_class(subject, classes)
        logger.debug("Subject %s matched class %s", subject.id, matched.name if matched else None)
        return SubjectMatch(
            subject_id=subject.id,
            display=subject.display,
            category=subject.category,
            class_name=matched.name if matched else None,
        )

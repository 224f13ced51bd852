# -*- coding: utf-8 -*-
"""Study-aid links and exam strategy advice attached to generated tasks."""
from __future__ import annotations

import re
from dataclasses import dataclass, field

from study_planner.models import Resource


STUDY_COACH = Resource("Study Coach (AI)", "https://www.playlab.ai/project/cmi7fu59u07kwl10uyroeqf8n")
TEST_PREP = Resource("Final Exam Prep", "https://www.khanacademy.org")
STUDY_GUIDE = Resource("Study Guide", "https://quizlet.com")
SUBMISSION_PORTAL = Resource("Submission Portal", "https://canvas.instructure.com")

# (pattern over the lowercased name, resource); first match wins
SUBJECT_RESOURCES: list[tuple[str, Resource]] = [
    (r"\b(math|calc|algebra|geometry|stat|trig)", Resource("Khan Academy Math", "https://www.khanacademy.org/math")),
    (r"\b(bio|chem|physics|science)", Resource("Khan Academy Science", "https://www.khanacademy.org/science")),
    (r"\b(history|apush)", Resource("Heimler's History", "https://www.youtube.com/@HeimlersHistory")),
    (r"\b(english|lit)", Resource("SparkNotes", "https://www.sparknotes.com")),
]
DEFAULT_RESOURCE = Resource("Knowt", "https://knowt.com")


@dataclass
class Strategy:
    advice: list[str]
    resources: list[Resource] = field(default_factory=list)


STRATEGIES: dict[str, Strategy] = {
    "sat": Strategy(
        advice=[
            "Digital Adaptive Strategy: the SAT modules adapt to your performance, so focus on accuracy in "
            "Module 1 to unlock a higher score potential in Module 2.",
            "Math: use the built-in Desmos calculator for complex functions and prioritize algebra and data "
            "analysis questions.",
            "Reading/Writing: passages are short, so look for the one main idea quickly.",
            "Practice: review every mistake to find patterns in your reasoning.",
        ],
        resources=[
            Resource("Bluebook (College Board)", "https://bluebook.collegeboard.org/"),
            Resource("Khan Academy SAT", "https://www.khanacademy.org/test-prep/sat"),
        ],
    ),
    "act": Strategy(
        advice=[
            "Formatting Strategy: the ACT has fewer questions and more time now, so use the 4-choice math options.",
            "Core Focus: prioritize English, Math and Reading. Science is optional for the composite score.",
            "English: favor conciseness. A clear, short answer is often correct.",
            "Math: there is no penalty for guessing, so never leave a blank.",
        ],
        resources=[
            Resource("ACT Academy", "https://www.act.org/content/act/en/products-and-services/the-act/test-preparation/act-academy.html"),
            Resource("Official Prep Guide", "https://www.act.org/content/act/en/products-and-services/the-act/test-preparation.html"),
        ],
    ),
    "general": Strategy(
        advice=[
            "Spaced Repetition: don't cram. Sessions spread 1-2 days apart stick best.",
            "Active Recall: cover your notes and explain the concepts out loud instead of re-reading.",
            "Error Log: keep a list of every problem you missed and why.",
        ],
        resources=[
            Resource("Knowt", "https://knowt.com"),
            Resource("Quizlet", "https://quizlet.com"),
        ],
    ),
}


def strategy_for(name: str) -> Strategy:
    lower = (name or "").lower()
    if re.search(r"\bsat\b", lower):
        return STRATEGIES["sat"]
    if re.search(r"\bact\b", lower):
        return STRATEGIES["act"]
    return STRATEGIES["general"]


def subject_resource(name: str) -> Resource:
    lower = (name or "").lower()
    for pattern, resource in SUBJECT_RESOURCES:
        if re.search(pattern, lower):
            return resource
    return DEFAULT_RESOURCE


def study_resources(name: str) -> list[Resource]:
    """The fixed resource list for a study session on ``name``."""
    resources = [STUDY_COACH, subject_resource(name)]
    for resource in strategy_for(name).resources:
        if all(resource.url != r.url for r in resources):
            resources.append(resource)
    return resources

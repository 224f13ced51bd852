# -*- coding: utf-8 -*-
"""
Plan generation for the study assistant chat.

``build_plan`` reads the tail of a conversation plus the student's tasks,
routine and classes, and returns a reply together with the task and class
records to merge into the caller's state. It is deterministic and keeps no
state between calls: what the assistant is waiting for travels either as the
``pending`` context the caller hands back, or is recovered from the last
assistant line of the transcript.
"""
from __future__ import annotations

import logging
import math
import os
import re
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta
import typing as t

from study_planner.dates import DateResolver
from study_planner.models import (
    ActivityRecord,
    ClassRecord,
    ConversationState,
    ConversationTurn,
    PendingContext,
    PlanResult,
    TaskKind,
    TaskRecord,
)
from study_planner.slots import DEADLINE_DURATION, SlotFinder
from study_planner.strategies import (
    STUDY_GUIDE,
    SUBMISSION_PORTAL,
    TEST_PREP,
    strategy_for,
    study_resources,
    subject_resource,
)
from study_planner.subjects import SubjectMatch, SubjectResolver, find_global_exams
from study_planner.timefmt import (
    format_clock,
    format_day,
    format_duration,
    format_task_time,
    parse_time_phrase,
    task_day,
    weekday_name,
)


logger = logging.getLogger(__name__)

ASSISTANT_NAME = os.getenv("STUDY_PLANNER_ASSISTANT_NAME", "Calendly")

TROUBLE_MESSAGE = "I'm having trouble processing that. Can you try again?"
CANCEL_MESSAGE = "No problem, I won't add that. Let me know if anything else comes up!"

# Scheduling constants
DEFAULT_DEADLINE_DAYS = 3
TEST_HOUR = 8.25  # 8:15 AM
TEST_HOURS = 1.0
SESSION_HOURS = 1.0
WORK_SESSION_HOURS = 0.75
DUE_HOUR = 23 + 59 / 60
SHORT_HORIZON_DAYS = 7
LONG_HORIZON_DAYS = 14
STUDY_WINDOW_DAYS = 21
INTENSITY_SESSIONS = {
    "normal": (2, 3),
    "moderate": (4, 5),
    "hardcore": (6, 8),
}

# The assistant's questions double as the markers for recovering state from a transcript
CLASS_NAME_PROMPT = "What's the full name of this class? (e.g., AP Calculus, Algebra 2)"
INTENSITY_PROMPT = "How intense should your prep be: Normal, Moderate, or Hardcore?"
TIME_PROMPT = "What time works for you?"
RESCHEDULE_PROMPT = "Would you like me to reschedule it?"

_PROMPT_MARKERS = [
    ("full name of this class", ConversationState.AWAITING_CLASS_NAME),
    ("how intense should your prep be", ConversationState.AWAITING_INTENSITY),
    ("what time works for you", ConversationState.AWAITING_TIME),
    ("would you like me to reschedule", ConversationState.AWAITING_RESCHEDULE),
]

TEST_WORDS = re.compile(r"\b(tests?|exams?|quiz|quizzes|midterms?|finals?)\b")
ASSIGNMENT_WORDS = re.compile(r"\b(homework|hw|assignments?|essays?|projects?|worksheets?|due)\b")
RESCHEDULE_WORDS = re.compile(r"\b(move|moved|reschedule|rescheduled|push|postpone|change)\b")
CANCEL_WORDS = re.compile(r"\b(never ?mind|cancel|forget it|no thanks)\b")
YES_WORDS = re.compile(r"\b(yes|yeah|yep|sure|ok|okay|please|do it)\b")
NO_WORDS = re.compile(r"\b(no|nope|nah|keep)\b")

GREETINGS = {"hi", "hello", "hey", "sup", "yo", "hiya", "howdy"}
GREETING_PHRASES = ("good morning", "good afternoon", "good evening")
FEELINGS = ("how are you", "how's it going", "how are things", "what's up")

_SPEAKER = re.compile(r"^\s*([A-Za-z ]{1,20}?)\s*:\s?(.*)$")
_ASSISTANT_SPEAKERS = {"assistant", "ai", "calendly", ASSISTANT_NAME.lower()}


def parse_conversation(text: str) -> list[ConversationTurn]:
    """Split a "User: ...\\nAssistant: ..." transcript into turns.

    Lines without a speaker prefix continue the previous turn. A transcript
    without any prefix is a single user message.
    """
    turns: list[ConversationTurn] = []
    for line in (text or "").splitlines():
        match = _SPEAKER.match(line)
        speaker = match.group(1).strip().lower() if match else None
        if speaker == "user":
            turns.append(ConversationTurn("user", match.group(2).strip()))
        elif speaker in _ASSISTANT_SPEAKERS:
            turns.append(ConversationTurn("ai", match.group(2).strip()))
        elif turns:
            turns[-1].text = f"{turns[-1].text}\n{line}".strip()
        elif line.strip():
            turns.append(ConversationTurn("user", line.strip()))
    return turns


def classify_prompt(text: str) -> ConversationState:
    """What an assistant message was waiting for."""
    lower = (text or "").lower()
    for marker, state in _PROMPT_MARKERS:
        if marker in lower:
            return state
    return ConversationState.IDLE


def task_mention(text: str) -> t.Optional[t.Literal["test", "assignment"]]:
    """'test' for tests, exams, quizzes and global exams, 'assignment' for homework and due dates."""
    lower = (text or "").lower()
    if TEST_WORDS.search(lower) or find_global_exams(text or ""):
        return "test"
    if ASSIGNMENT_WORDS.search(lower):
        return "assignment"
    return None


def describe_day(day: date) -> str:
    """'Friday (Jan 17)'"""
    return f"{weekday_name(day)} ({format_day(day)})"


@dataclass
class _Request:
    """A scheduling request read from one user message."""
    text: str
    kind: t.Literal["test", "assignment"]
    subject: SubjectMatch
    deadline: date
    deadline_given: bool
    stated_hour: t.Optional[float]
    reschedule: bool

    @property
    def noun(self) -> str:
        if self.kind == "assignment":
            return "assignment"
        lower = self.text.lower()
        if self.subject.is_global_exam or "exam" in lower or "midterm" in lower or "final" in lower:
            return "exam"
        if "quiz" in lower:
            return "quiz"
        return "test"


@dataclass
class _Draft:
    """Records produced so far in one call; generated tasks block later slots."""
    existing: list[TaskRecord]
    tasks: list[TaskRecord] = field(default_factory=list)

    @property
    def context(self) -> list[TaskRecord]:
        return self.existing + self.tasks


class PlanBuilder:
    """Turn one chat message into a reply plus task and class records.

    :param reference: the current moment; nothing is scheduled before it.
    """

    def __init__(self, reference: datetime) -> None:
        self.reference = reference
        self.today = reference.date()
        self.dates = DateResolver()
        self.subjects = SubjectResolver()
        self.slots = SlotFinder(reference)

    def build(
            self,
            turns: t.Sequence[ConversationTurn],
            tasks: t.Sequence[TaskRecord],
            activities: t.Sequence[ActivityRecord],
            classes: t.Sequence[ClassRecord],
            pending: t.Optional[PendingContext] = None,
    ) -> PlanResult:
        user_indexes = [i for i, turn in enumerate(turns) if turn.author == "user"]
        if not user_indexes or not turns[user_indexes[-1]].text.strip():
            return PlanResult(message=self._help_message())
        last_user = turns[user_indexes[-1]].text

        if pending is None:
            last_assistant = next(
                (turn.text for turn in reversed(turns[:user_indexes[-1]]) if turn.author == "ai"), ""
            )
            state = classify_prompt(last_assistant)
            if state is not ConversationState.IDLE:
                pending = self._recover_pending(turns[:user_indexes[-1]], state, classes)
        state = pending.state if pending else ConversationState.IDLE
        logger.debug("Conversation state %s for %r", state.value, last_user)

        kind = task_mention(last_user)
        if kind is not None:
            return self._schedule(last_user, kind, turns, tasks, activities, classes)

        if pending is not None:
            if state is ConversationState.AWAITING_CLASS_NAME:
                return self._receive_class_name(last_user, pending, turns, tasks, activities, classes)
            if state is ConversationState.AWAITING_INTENSITY:
                return self._receive_intensity(last_user, pending, turns, tasks, activities, classes)
            if state is ConversationState.AWAITING_TIME:
                return self._receive_time(last_user, pending, turns, tasks, activities, classes)
            if state is ConversationState.AWAITING_RESCHEDULE:
                return self._receive_reschedule(last_user, pending, turns, tasks, activities, classes)

        return PlanResult(message=self._small_talk(last_user))

    # -----------------------------
    # Conversation states
    # -----------------------------

    def _receive_class_name(self, reply, pending, turns, tasks, activities, classes) -> PlanResult:
        if CANCEL_WORDS.search(reply.lower()):
            return PlanResult(message=CANCEL_MESSAGE)
        chat = self._chit_chat(reply)
        if chat is not None:
            return PlanResult(message=chat)

        name = self.subjects.correct_name(reply)
        if not name:
            return self._waiting(pending, f"Sorry, I didn't catch that. {CLASS_NAME_PROMPT}")

        existing = next((c for c in classes if c.name.strip().lower() == name.lower()), None)
        new_classes: list[ClassRecord] = []
        if existing is None:
            inferred = self.subjects.subject_for_name(name)
            subject_name = pending.subject_display or (inferred.display if inferred else "General")
            existing = ClassRecord(name=name, subject=subject_name)
            new_classes.append(existing)
            logger.info("Adding class %r (%s) from chat", existing.name, existing.subject)

        all_classes = list(classes) + new_classes
        if pending.kind == "test" and len(self.subjects.resolve_all(pending.request, all_classes)) > 1:
            # several subjects in one message: plan them together once every class is known
            subject = None
        else:
            subject = SubjectMatch(
                subject_id=pending.subject_id or f"class:{existing.id}",
                display=pending.subject_display or existing.subject,
                category=pending.category,
                class_name=existing.name,
            )
        result = self._schedule(
            pending.request,
            pending.kind,
            turns,
            tasks,
            activities,
            all_classes,
            subject=subject,
            deadline=pending.deadline,
        )
        result.new_classes = new_classes + result.new_classes
        if new_classes:
            result.message = f"Got it! I've added {existing.name} to your classes. {result.message}"
        return result

    def _receive_intensity(self, reply, pending, turns, tasks, activities, classes) -> PlanResult:
        lower = reply.lower()
        if CANCEL_WORDS.search(lower):
            return PlanResult(message=CANCEL_MESSAGE)
        level = "hardcore" if "hard" in lower else "moderate" if "mod" in lower else "normal"
        result = self._schedule(
            pending.request,
            pending.kind,
            turns,
            tasks,
            activities,
            classes,
            deadline=pending.deadline,
            intensity=level,
        )
        if result.new_tasks:
            result.message = f"{level.capitalize()} plan it is! {result.message}"
        return result

    def _receive_time(self, reply, pending, turns, tasks, activities, classes) -> PlanResult:
        if CANCEL_WORDS.search(reply.lower()):
            return PlanResult(message=CANCEL_MESSAGE)
        hour = parse_time_phrase(reply)
        if hour is None:
            chat = self._chit_chat(reply)
            if chat is not None:
                return PlanResult(message=chat)
            return self._waiting(pending, f"I didn't catch a time there. {TIME_PROMPT} (e.g., 5pm)")
        return self._schedule(
            pending.request,
            pending.kind,
            turns,
            tasks,
            activities,
            classes,
            deadline=pending.deadline,
            preferred_hour=hour,
        )

    def _receive_reschedule(self, reply, pending, turns, tasks, activities, classes) -> PlanResult:
        lower = reply.lower()
        if RESCHEDULE_WORDS.search(lower) or YES_WORDS.search(lower):
            new_deadline = self.dates.find(reply, self.reference)
            return self._schedule(
                pending.request,
                pending.kind,
                turns,
                tasks,
                activities,
                classes,
                deadline=new_deadline.day if new_deadline else pending.deadline,
                reschedule=True,
            )
        if NO_WORDS.search(lower):
            return PlanResult(message="Okay, I'll keep your existing schedule as it is.")
        return PlanResult(message=self._small_talk(reply))

    def _recover_pending(self, earlier_turns, state, classes) -> t.Optional[PendingContext]:
        """Rebuild the pending request from the last user message that asked for a plan."""
        for turn in reversed(earlier_turns):
            if turn.author != "user":
                continue
            kind = task_mention(turn.text)
            if kind is None:
                continue
            subject = self.subjects.resolve(turn.text, classes)
            if state is ConversationState.AWAITING_CLASS_NAME:
                # the question was about the first subject without a class
                subject = next(
                    (match for match in self.subjects.resolve_all(turn.text, classes) if match.needs_class), subject
                )
            mention = self.dates.find(turn.text, self.reference)
            return PendingContext(
                state=state,
                kind=kind,
                subject_id=subject.subject_id,
                subject_display=subject.display,
                category=subject.category,
                deadline=mention.day if mention else None,
                request=turn.text,
            )
        return None

    # -----------------------------
    # Scheduling
    # -----------------------------

    def _read_request(self, text, kind, turns, classes, subject=None, deadline=None) -> _Request:
        if subject is None:
            subject = self.subjects.resolve(text, classes)
            if not subject.found:
                # fall back to anything the student said earlier
                history = "\n".join(turn.text for turn in turns if turn.author == "user")
                subject = self.subjects.resolve(history, classes)
        given = deadline is not None
        if deadline is None:
            mention = self.dates.find(text, self.reference)
            if mention is not None:
                deadline, given = mention.day, True
            else:
                deadline = self.today + timedelta(days=DEFAULT_DEADLINE_DAYS)
        return _Request(
            text=text,
            kind=kind,
            subject=subject,
            deadline=deadline,
            deadline_given=given,
            stated_hour=parse_time_phrase(text),
            reschedule=bool(RESCHEDULE_WORDS.search(text.lower())),
        )

    def _schedule(
            self,
            text: str,
            kind: t.Literal["test", "assignment"],
            turns: t.Sequence[ConversationTurn],
            tasks: t.Sequence[TaskRecord],
            activities: t.Sequence[ActivityRecord],
            classes: t.Sequence[ClassRecord],
            subject: t.Optional[SubjectMatch] = None,
            deadline: t.Optional[date] = None,
            preferred_hour: t.Optional[float] = None,
            intensity: t.Optional[str] = None,
            reschedule: bool = False,
    ) -> PlanResult:
        request = self._read_request(text, kind, turns, classes, subject=subject, deadline=deadline)
        if reschedule:
            request.reschedule = True

        if request.deadline < self.today:
            return PlanResult(
                message=(
                    f"I can't schedule that for {describe_day(request.deadline)} because that date has "
                    f"already passed. If you meant an upcoming day, tell me which one and I'll plan it."
                )
            )

        if not request.subject.found:
            pending = self._pending(ConversationState.AWAITING_CLASS_NAME, request)
            return PlanResult(
                message=f"I can add that {request.noun}, but which class is it for? {CLASS_NAME_PROMPT}",
                state=pending.state,
                pending=pending,
            )

        requests = [request]
        if subject is None and request.kind == "test":
            matches = self.subjects.resolve_all(text, classes)
            if len(matches) > 1:
                requests = [replace(request, subject=match) for match in matches]

        missing = next((item for item in requests if item.subject.needs_class), None)
        if missing is not None:
            display = missing.subject.display
            pending = self._pending(ConversationState.AWAITING_CLASS_NAME, missing)
            return PlanResult(
                message=(
                    f"I see you have a {display} {missing.noun}, but I don't have a {display} class "
                    f"in your schedule yet. {CLASS_NAME_PROMPT}"
                ),
                state=pending.state,
                pending=pending,
            )

        replaced: list[str] = []
        if request.kind == "test":
            for item in requests:
                duplicates = self._existing_tests(item, tasks)
                if duplicates and not request.reschedule:
                    first = duplicates[0]
                    pending = self._pending(ConversationState.AWAITING_RESCHEDULE, item)
                    return PlanResult(
                        message=(
                            f"You already have {first.title} on your schedule for {first.time}, so I didn't add "
                            f"a duplicate. {RESCHEDULE_PROMPT}"
                        ),
                        state=pending.state,
                        pending=pending,
                    )
                replaced += [task_id for task_id in self._replaced_ids(item, duplicates, tasks) if task_id not in replaced]

        remaining = [task for task in tasks if task.id not in replaced]
        if request.kind == "test":
            result = self._plan_test(requests, remaining, activities, preferred_hour, intensity)
        else:
            result = self._plan_assignment(request, remaining, activities, preferred_hour)

        if replaced and result.new_tasks:
            result.replaced_task_ids = replaced
            names = _join_names([item.subject.display_name for item in requests])
            noun = request.noun if len(requests) == 1 else _plural(request.noun)
            result.message = f"I've moved your {names} {noun}. {result.message}"
        return result

    def _plan_test(self, requests, tasks, activities, preferred_hour, intensity) -> PlanResult:
        """Place each test on the deadline and its study sessions on the days before.

        With several subjects the days before the deadline are dealt out in
        turn, so every study day belongs to a single subject.
        """
        lead = requests[0]
        deadline = lead.deadline
        days_until = (deadline - self.today).days
        candidates = [
            deadline - timedelta(days=offset)
            for offset in range(1, STUDY_WINDOW_DAYS + 1)
            if deadline - timedelta(days=offset) >= self.today
        ]
        label = _join_names([item.subject.display_name for item in requests])
        noun = lead.noun if len(requests) == 1 else _plural(lead.noun)

        if intensity is None and days_until > LONG_HORIZON_DAYS:
            pending = self._pending(ConversationState.AWAITING_INTENSITY, lead)
            verb = "is" if len(requests) == 1 else "are"
            return PlanResult(
                message=(
                    f"Your {label} {noun} {verb} on {describe_day(deadline)}, {days_until} days away. "
                    f"{INTENSITY_PROMPT}"
                ),
                state=pending.state,
                pending=pending,
            )
        if intensity is not None:
            _, high = INTENSITY_SESSIONS[intensity]
            count = min(high, len(candidates))
        else:
            count = min(2 if days_until < SHORT_HORIZON_DAYS else 4, len(candidates))

        draft = _Draft(existing=list(tasks))
        for item in requests:
            name = item.subject.display_name
            test_hour = self.slots.place_fixed(deadline, item.stated_hour or TEST_HOUR, TEST_HOURS, draft.context)
            if test_hour is None and preferred_hour is not None:
                # the answer to "what time works" when the test itself did not fit
                test_hour = self.slots.place_fixed(deadline, preferred_hour, TEST_HOURS, draft.context)
            if test_hour is None:
                return self._ask_for_time(item, f"I couldn't fit your {name} {item.noun} on {describe_day(deadline)}.")
            draft.tasks.append(TaskRecord(
                title=f"{name} {item.noun.capitalize()}",
                time=format_task_time(deadline, test_hour),
                duration=format_duration(TEST_HOURS),
                type=TaskKind.TEST.wire_type,
                priority="high",
                description="Official assessment date.",
                resources=[TEST_PREP],
                kind=TaskKind.TEST,
            ))

        finals: list[tuple[str, date, float]] = []
        total = 0
        for index, item in enumerate(requests):
            name = item.subject.display_name
            sessions: list[tuple[date, float, TaskRecord]] = []
            for position, day in enumerate(_session_days(candidates, count, index, len(requests))):
                hour = self.slots.find_slot(day, SESSION_HOURS, draft.context, activities, preferred_hour)
                if hour is None:
                    if position == 0:
                        # the final review is pinned to its day
                        return self._ask_for_time(
                            item, f"I couldn't find an open slot for your {name} final review on {describe_day(day)}."
                        )
                    logger.debug("Skipping %s session on %s, no free slot", name, day)
                    continue
                session = self._study_session(name, day, hour, final=position == 0, first=False)
                sessions.append((day, hour, session))
                draft.tasks.append(session)

            # re-title the earliest session now that it is known
            if len(sessions) > 1:
                day, hour, earliest = min(sessions, key=lambda entry: entry[0])
                draft.tasks[draft.tasks.index(earliest)] = replace(
                    self._study_session(name, day, hour, final=False, first=True), id=earliest.id
                )
            if sessions:
                finals.append((name, sessions[0][0], sessions[0][1]))
            total += len(sessions)

        plural = "s" if total != 1 else ""
        if len(requests) == 1:
            message = f"Got it! Your {label} {noun} is on {describe_day(deadline)}."
            if finals:
                _, final_day, final_hour = finals[0]
                message += (
                    f" I've scheduled {total} study session{plural} leading up to it, with a final review "
                    f"on {describe_day(final_day)} at {format_clock(final_hour)}."
                )
        else:
            message = f"Got it! You have multiple {noun} on {describe_day(deadline)}: {label}."
            if finals:
                reviews = _join_names([
                    f"{name} on {describe_day(day)} at {format_clock(hour)}" for name, day, hour in finals
                ])
                message += (
                    f" I've interleaved {total} study session{plural} so each day belongs to one subject, "
                    f"with final reviews for {reviews}."
                )
        if not finals:
            message += " There are no days left before it for study sessions, so make the most of the time you have."
        message += f" Tip: {strategy_for(lead.subject.display_name).advice[0]}"
        return PlanResult(message=message, new_tasks=_chronological(draft.tasks, self.today))

    def _plan_assignment(self, request, tasks, activities, preferred_hour) -> PlanResult:
        name = request.subject.display_name
        deadline = request.deadline
        preferred = preferred_hour if preferred_hour is not None else request.stated_hour

        if request.stated_hour is not None or deadline == self.today:
            # a stated time is when the student wants to work on it, on the day named
            days = [deadline]
        else:
            days = [self.today + timedelta(days=offset) for offset in range((deadline - self.today).days)]

        chosen: t.Optional[tuple[date, float]] = None
        for day in days:
            hour = self.slots.find_slot(day, WORK_SESSION_HOURS, tasks, activities, preferred)
            if hour is not None:
                chosen = (day, hour)
                break
        if chosen is None:
            return self._ask_for_time(
                request,
                f"I couldn't find an open slot before your {name} assignment is due on {describe_day(deadline)}.",
            )

        day, hour = chosen
        minutes = int(WORK_SESSION_HOURS * 60)
        work = TaskRecord(
            title=f"{name} Homework",
            time=format_task_time(day, hour),
            duration=format_duration(WORK_SESSION_HOURS),
            type=TaskKind.STUDY_SESSION.wire_type,
            priority="medium",
            description=f"Work for {minutes} minutes on your {name} assignment so it's ready before the deadline.",
            resources=[STUDY_GUIDE, subject_resource(name)],
            kind=TaskKind.STUDY_SESSION,
        )
        due = TaskRecord(
            title=f"{name} DUE",
            time=format_task_time(deadline, DUE_HOUR),
            duration=DEADLINE_DURATION,
            type=TaskKind.ASSIGNMENT_DEADLINE.wire_type,
            priority="high",
            description=f"Official deadline for {name}.",
            resources=[SUBMISSION_PORTAL],
            kind=TaskKind.ASSIGNMENT_DEADLINE,
        )
        message = (
            f"I've set up two markers for your {name} assignment: a work session on {describe_day(day)} "
            f"at {format_clock(hour)} and the deadline on {describe_day(deadline)}."
        )
        if preferred is not None and hour != preferred:
            message += f" {format_clock(preferred)} wasn't open, so I picked the next free time."
        return PlanResult(message=message, new_tasks=[work, due])

    def _study_session(self, name: str, day: date, hour: float, final: bool, first: bool) -> TaskRecord:
        minutes = int(SESSION_HOURS * 60)
        if final:
            title, priority = f"{name} - Final Review", "high"
            action = f"a timed practice test for {name}, then go through every mistake in your error log"
        elif first:
            title, priority = f"{name} - Prep Session", "medium"
            action = f"gathering your {name} notes and listing every topic that will be covered"
        else:
            title, priority = f"{name} - Prep Session", "medium"
            action = f"active recall for {name}: cover your notes and explain each topic out loud"
        return TaskRecord(
            title=title,
            time=format_task_time(day, hour),
            duration=format_duration(SESSION_HOURS),
            type=TaskKind.STUDY_SESSION.wire_type,
            priority=priority,
            description=f"Work for {minutes} minutes on {action}.",
            resources=study_resources(name),
            kind=TaskKind.STUDY_SESSION,
        )

    def _existing_tests(self, request: _Request, tasks: t.Sequence[TaskRecord]) -> list[TaskRecord]:
        names = {n.lower() for n in (request.subject.display_name, request.subject.display) if n}
        found = []
        for task in tasks:
            title = task.title.lower()
            if task.type == "study" or task.completed:
                continue
            if not re.search(r"\b(test|exam|quiz)\b", title):
                continue
            if not any(name in title for name in names):
                continue
            day = task_day(task.time, self.today, nearest=True)
            if day is not None and day < self.today:
                continue
            found.append(task)
        return found

    def _replaced_ids(self, request, duplicates, tasks) -> list[str]:
        prefix = f"{request.subject.display_name} - ".lower()
        ids = [task.id for task in duplicates]
        ids += [
            task.id for task in tasks
            if task.type == "study" and task.title.lower().startswith(prefix) and task.id not in ids
        ]
        return ids

    def _ask_for_time(self, request: _Request, reason: str) -> PlanResult:
        pending = self._pending(ConversationState.AWAITING_TIME, request)
        return PlanResult(message=f"{reason} {TIME_PROMPT}", state=pending.state, pending=pending)

    def _pending(self, state: ConversationState, request: _Request) -> PendingContext:
        return PendingContext(
            state=state,
            kind=request.kind,
            subject_id=request.subject.subject_id,
            subject_display=request.subject.display,
            category=request.subject.category,
            deadline=request.deadline if request.deadline_given else None,
            request=request.text,
        )

    def _waiting(self, pending: PendingContext, message: str) -> PlanResult:
        return PlanResult(message=message, state=pending.state, pending=pending)

    # -----------------------------
    # Small talk
    # -----------------------------

    def _small_talk(self, text: str) -> str:
        return self._chit_chat(text) or self._help_message()

    def _chit_chat(self, text: str) -> t.Optional[str]:
        """A reply to greetings, thanks and questions about the assistant, else None."""
        lower = text.lower().strip()
        first_word = re.match(r"[a-z']*", lower).group(0)
        is_greeting = first_word in GREETINGS or lower.startswith(GREETING_PHRASES)
        asks_feelings = any(phrase in lower for phrase in FEELINGS)

        if is_greeting or asks_feelings:
            hour = self.reference.hour
            greeting = "Good morning" if hour < 12 else "Good afternoon" if hour < 17 else "Good evening"
            if asks_feelings:
                return (
                    f"{greeting}! I'm doing great, thanks for asking. I'm ready to help you organize your "
                    f"classes and study sessions. Do you have any tests or assignments coming up?"
                )
            return (
                f"{greeting}! I'm {ASSISTANT_NAME}, your study assistant. How can I help with your schedule "
                f"today? You can tell me about upcoming tests or assignments!"
            )
        if "thank" in lower:
            return "You're very welcome! I'm here to help you stay on top of your studies. Let me know if you need anything else!"
        if "who are you" in lower or "what are you" in lower:
            return (
                f"I'm {ASSISTANT_NAME}, your personal student assistant. I help you track your classes, manage "
                f"your assignments, and build study schedules for your exams. Want to try scheduling something?"
            )
        return None

    def _help_message(self) -> str:
        return (
            "I'm here to help! If you have a specific test or assignment, tell me the subject and date "
            "(e.g., 'Math test next Tuesday') and I'll build a study plan for you."
        )


def _spread(candidates: list[date], count: int) -> list[date]:
    """Pick ``count`` days from candidates (latest first), every other day when there is room."""
    count = min(count, len(candidates))
    if count <= 0:
        return []
    if len(candidates) >= 2 * count - 1:
        return candidates[:2 * count - 1:2]
    if count == 1:
        return candidates[:1]
    step = (len(candidates) - 1) / (count - 1)
    return [candidates[math.floor(i * step + 0.5)] for i in range(count)]


def _session_days(candidates: list[date], count: int, index: int, total: int) -> list[date]:
    """Study days for subject ``index`` of ``total``, latest first.

    A lone subject is spread with :func:`_spread`; several subjects take the
    days before the deadline in turn.
    """
    if total == 1:
        return _spread(candidates, count)
    return [candidates[slot] for slot in range(index, count * total, total) if slot < len(candidates)]


def _join_names(names: t.Sequence[str]) -> str:
    """'A', 'A and B', 'A, B and C'"""
    names = list(names)
    if len(names) <= 1:
        return "".join(names)
    return f"{', '.join(names[:-1])} and {names[-1]}"


def _plural(noun: str) -> str:
    return "quizzes" if noun == "quiz" else f"{noun}s"


def _chronological(tasks: list[TaskRecord], reference: date) -> list[TaskRecord]:
    def sort_key(task: TaskRecord) -> tuple[date, str]:
        return task_day(task.time, reference) or reference, task.time

    return sorted(tasks, key=sort_key)


def build_plan(
        conversation: t.Union[str, t.Sequence[ConversationTurn]],
        current_tasks: t.Sequence[TaskRecord] = (),
        routine_activities: t.Sequence[ActivityRecord] = (),
        class_list: t.Sequence[ClassRecord] = (),
        reference: t.Union[datetime, date, None] = None,
        pending: t.Optional[PendingContext] = None,
) -> PlanResult:
    """Reply to the latest user message and propose records to add.

    Never raises: any internal fault becomes a "try again" reply so the chat
    stays responsive.
    """
    if reference is None:
        reference = datetime.now()
    elif not isinstance(reference, datetime):
        reference = datetime.combine(reference, time())
    try:
        turns = parse_conversation(conversation) if isinstance(conversation, str) else list(conversation)
        return PlanBuilder(reference).build(
            turns,
            list(current_tasks or []),
            list(routine_activities or []),
            list(class_list or []),
            pending=pending,
        )
    except Exception:
        logger.exception("Plan generation failed for %r", conversation)
        return PlanResult(message=TROUBLE_MESSAGE)

"""Render project records into prompt-ready text blocks.

Each formatter returns plain text for one chunk. Empty inputs return an
empty string so the chunk is skipped rather than padded with filler.
"""

import csv
import io
import json
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from contracts import (
    Client,
    ContentType,
    ExtractedUpload,
    InterviewResponse,
    Project,
    Question,
    Stakeholder,
)

MAX_TABLE_ROWS = 50


@dataclass
class Answer:
    stakeholder: str
    response: str
    role: Optional[str] = None
    answered: Optional[str] = None


@dataclass
class QuestionAnswerPair:
    """One question with every stakeholder answer to it."""
    question: str
    category: str
    priority: Optional[str] = None
    answers: List[Answer] = field(default_factory=list)


@dataclass
class StakeholderProfile:
    name: str
    role: str
    department: str
    email: Optional[str]
    status: str
    response_count: int
    completion_rate: str


def _date(value, with_time: bool = False) -> Optional[str]:
    if value is None:
        return None
    return value.strftime("%Y-%m-%d %H:%M" if with_time else "%Y-%m-%d")


# ----------------------------------------------------------------------
# Project
# ----------------------------------------------------------------------

def format_project(project: Project, client: Optional[Client] = None) -> str:
    lines = [
        f"Project: {project.name}",
        f"Description: {project.description or 'No description provided'}",
        f"Status: {project.status} ({project.progress}% complete)",
    ]
    if client:
        lines.append(f"Client: {client.name}")
    if project.start_date:
        lines.append(f"Start Date: {_date(project.start_date)}")
    if project.target_end_date:
        lines.append(f"Target End: {_date(project.target_end_date)}")
    return "\n".join(lines)


# ----------------------------------------------------------------------
# Interview responses
# ----------------------------------------------------------------------

def prepare_question_answers(
    responses: Iterable[InterviewResponse],
    questions: Iterable[Question],
    stakeholders: Iterable[Stakeholder],
) -> List[QuestionAnswerPair]:
    """Pair each question with its answers, in order of first response."""
    questions_by_id = {q.id: q for q in questions}
    stakeholders_by_id = {s.id: s for s in stakeholders}
    pairs: Dict[str, QuestionAnswerPair] = {}

    for response in responses:
        question = questions_by_id.get(response.question_id)
        if response.question_id not in pairs:
            pairs[response.question_id] = QuestionAnswerPair(
                question=question.text if question else "Unknown Question",
                category=question.category if question else "General",
                priority=question.priority if question else None,
            )
        stakeholder = stakeholders_by_id.get(response.stakeholder_id)
        pairs[response.question_id].answers.append(Answer(
            stakeholder=stakeholder.name if stakeholder else "Unknown Stakeholder",
            role=stakeholder.role if stakeholder else None,
            response=response.answer_text(),
            answered=_date(response.created_at, with_time=True),
        ))

    return list(pairs.values())


def format_question_answers(pairs: List[QuestionAnswerPair]) -> str:
    blocks = []
    for i, qa in enumerate(pairs, 1):
        header = f"Q{i}: {qa.question}\nCategory: {qa.category}"
        if qa.priority:
            header += f" | Priority: {qa.priority}"
        lines = [header, f"Responses ({len(qa.answers)}):"]
        for j, answer in enumerate(qa.answers, 1):
            who = f"{answer.stakeholder} ({answer.role})" if answer.role else answer.stakeholder
            lines.append(f"  {j}. {who}:\n     \"{answer.response}\"")
            if answer.answered:
                lines.append(f"     Answered: {answer.answered}")
        blocks.append("\n".join(lines))
    return "\n---\n".join(blocks)


def group_by_category(pairs: List[QuestionAnswerPair]) -> Dict[str, List[QuestionAnswerPair]]:
    grouped: Dict[str, List[QuestionAnswerPair]] = {}
    for qa in pairs:
        grouped.setdefault(qa.category, []).append(qa)
    return grouped


def format_responses_by_category(pairs: List[QuestionAnswerPair]) -> str:
    return "\n\n".join(
        f"### {category}\n{format_question_answers(group)}"
        for category, group in group_by_category(pairs).items()
    )


def format_responses_by_stakeholder(
    responses: List[InterviewResponse],
    questions: List[Question],
    stakeholders: List[Stakeholder],
) -> str:
    names = {s.id: s.name for s in stakeholders}
    grouped: Dict[str, List[InterviewResponse]] = {}
    for response in responses:
        grouped.setdefault(names.get(response.stakeholder_id, "Unknown"), []).append(response)

    return "\n\n".join(
        f"### {name}\n{format_question_answers(prepare_question_answers(group, questions, stakeholders))}"
        for name, group in grouped.items()
    )


# ----------------------------------------------------------------------
# Stakeholders
# ----------------------------------------------------------------------

def prepare_stakeholder_profiles(
    stakeholders: List[Stakeholder],
    responses: List[InterviewResponse],
) -> List[StakeholderProfile]:
    """Profiles with completion rate against the questions anyone has answered."""
    total_questions = len({r.question_id for r in responses})
    profiles = []
    for stakeholder in stakeholders:
        own = [r for r in responses if r.stakeholder_id == stakeholder.id]
        answered = len({r.question_id for r in own})
        rate = round(answered / total_questions * 100) if total_questions else 0
        profiles.append(StakeholderProfile(
            name=stakeholder.name,
            role=stakeholder.role or "N/A",
            department=stakeholder.department or "N/A",
            email=stakeholder.email,
            status=stakeholder.status,
            response_count=len(own),
            completion_rate=f"{rate}%",
        ))
    return profiles


def format_stakeholder_profiles(profiles: List[StakeholderProfile]) -> str:
    return "\n\n".join(
        f"{i}. {p.name} - {p.role} ({p.department})\n"
        f"   Email: {p.email or 'N/A'}\n"
        f"   Status: {p.status}\n"
        f"   Responses: {p.response_count}\n"
        f"   Completion: {p.completion_rate}"
        for i, p in enumerate(profiles, 1)
    )


# ----------------------------------------------------------------------
# Uploads
# ----------------------------------------------------------------------

def render_csv_table(content: str, max_rows: int = MAX_TABLE_ROWS) -> Optional[str]:
    """CSV text -> markdown table, or None if it does not parse as CSV."""
    try:
        rows = [row for row in csv.reader(io.StringIO(content.strip())) if row]
    except csv.Error:
        return None
    if len(rows) < 2 or len(rows[0]) < 2:
        return None

    headers, body = rows[0], rows[1:]
    lines = [
        f"CSV Data ({len(body)} rows):",
        "",
        f"| {' | '.join(h.strip() for h in headers)} |",
        f"| {' | '.join('---' for _ in headers)} |",
    ]
    for row in body[:max_rows]:
        lines.append(f"| {' | '.join(cell.strip() for cell in row)} |")
    if len(body) > max_rows:
        lines.append(f"\n... and {len(body) - max_rows} more rows")
    return "\n".join(lines)


def render_json(content: str) -> Optional[str]:
    """JSON text -> pretty-printed JSON, or None if it does not parse."""
    try:
        parsed = json.loads(content)
    except ValueError:
        return None
    return f"JSON Data:\n\n{json.dumps(parsed, indent=2)}"


def _render_structured(upload: ExtractedUpload) -> str:
    content = upload.extracted_content or ""
    name = upload.file_name.lower()
    mime = upload.mime_type.lower()
    if name.endswith(".json") or "json" in mime or content.lstrip().startswith(("{", "[")):
        rendered = render_json(content)
        if rendered:
            return rendered
    return render_csv_table(content) or content


def format_upload(upload: ExtractedUpload) -> str:
    """One upload block.

    Uploads without usable extracted text degrade to a metadata-only line;
    that is normal while extraction is pending or after it failed.
    """
    if not upload.has_usable_content():
        return f"{upload.file_name} (extraction {upload.extraction_status.value})"

    content = upload.extracted_content
    if upload.content_type == ContentType.STRUCTURED_DATA:
        content = _render_structured(upload)
    return f"{upload.file_name}\n=== CONTENT ===\n{content}\n=== END ==="


def format_uploads(uploads: List[ExtractedUpload]) -> str:
    return "\n\n".join(format_upload(u) for u in uploads)


# ----------------------------------------------------------------------
# Questions
# ----------------------------------------------------------------------

def format_questions(questions: List[Question]) -> str:
    return "\n".join(f"- [{q.category}] {q.text}" for q in questions)

"""Variable resolver: project records -> named texts for the chunk prioritizer.

Each recognised template variable has one producer. Producers read a
ProjectBundle and return text; an empty string means "nothing to say" and
the chunk is skipped downstream.
"""

import re
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from contracts import Project, ProjectBundle
from context.prompt_builder import section_title
from resolver import formatters
from resolver.store import ProjectDataStore
from structured_logging import get_logger

logger = get_logger(__name__)

PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")

DEFAULT_VARIABLES = (
    "project_summary",
    "question_answers",
    "stakeholder_profiles",
    "file_content",
    "questions_list",
    "metadata",
)

# Template spellings that map onto a chunk variable
VARIABLE_ALIASES = {
    "stakeholder_responses": "question_answers",
    "stakeholders": "stakeholder_profiles",
    "uploads": "file_content",
    "files": "file_content",
    "questions": "questions_list",
    "question_list": "questions_list",
}

SCALAR_VARIABLES = ("project_name", "project_description", "transcript")


class VariableResolver:
    """Resolves template variables for a project from a data store."""

    def __init__(self, store: ProjectDataStore):
        self.store = store
        self._producers: Dict[str, Callable[[ProjectBundle], str]] = {
            "project_summary": self._project_summary,
            "question_answers": self._question_answers,
            "responses_by_category": self._responses_by_category,
            "responses_by_stakeholder": self._responses_by_stakeholder,
            "stakeholder_profiles": self._stakeholder_profiles,
            "file_content": self._file_content,
            "questions_list": self._questions_list,
        }

    @property
    def known_variables(self) -> List[str]:
        return list(self._producers) + ["metadata"]

    @staticmethod
    def canonical(name: str) -> str:
        return VARIABLE_ALIASES.get(name, name)

    def resolve(
        self,
        project_id: str,
        variables: Optional[Iterable[str]] = None,
        document_title: str = "Untitled Document",
        generated_at: Optional[datetime] = None,
    ) -> Dict[str, str]:
        """Load a project and produce its named texts.

        Raises:
            DataStoreError: If the store cannot be read
            ValueError: For a variable name with no producer
        """
        bundle = self.store.load_bundle(project_id)
        return self.resolve_bundle(bundle, variables, document_title, generated_at)

    def resolve_bundle(
        self,
        bundle: ProjectBundle,
        variables: Optional[Iterable[str]] = None,
        document_title: str = "Untitled Document",
        generated_at: Optional[datetime] = None,
    ) -> Dict[str, str]:
        names: List[str] = []
        for name in variables if variables is not None else DEFAULT_VARIABLES:
            name = self.canonical(name)
            if name not in self.known_variables:
                raise ValueError(f"Unknown template variable: {name}. Known: {', '.join(self.known_variables)}")
            if name not in names:
                names.append(name)

        texts: Dict[str, str] = {}
        for name in names:
            if name == "metadata":
                stamp = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M")
                texts[name] = f"Document: {document_title}\nGenerated: {stamp}"
            else:
                texts[name] = self._producers[name](bundle)

        logger.info(
            f"Resolved {len(texts)} variables for project {bundle.project.id} "
            f"({sum(1 for t in texts.values() if t)} non-empty)"
        )
        return texts

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def variables_used(self, template: str) -> List[str]:
        """Recognised placeholders in a template, in order of first appearance."""
        recognised = set(SCALAR_VARIABLES) | set(VARIABLE_ALIASES) | set(self.known_variables)
        found: List[str] = []
        for match in PLACEHOLDER.finditer(template):
            name = match.group(1)
            if name in recognised and name not in found:
                found.append(name)
        return found

    def chunk_variables(self, template: str) -> List[str]:
        """Default variables plus any extra chunk variables the template asks for."""
        names = list(DEFAULT_VARIABLES)
        for name in self.variables_used(template):
            name = self.canonical(name)
            if name not in SCALAR_VARIABLES and name not in names:
                names.append(name)
        return names

    def render_template(self, template: str, project: Project) -> str:
        """Fill scalar placeholders inline; point chunked ones at their section.

        Large content is sent once as its own chunk, so '{{question_answers}}'
        becomes a reference to the QUESTION ANSWERS section instead of a copy.
        Unrecognised placeholders are left as they are.
        """
        scalars = {
            "project_name": project.name or "Untitled Project",
            "project_description": project.description or "No description provided",
            "transcript": project.transcript or "",
        }

        def replace(match: "re.Match") -> str:
            name = match.group(1)
            if name in scalars:
                return scalars[name]
            canonical = self.canonical(name)
            if canonical in self.known_variables:
                return f"[see the {section_title(canonical)} section below]"
            return match.group(0)

        return PLACEHOLDER.sub(replace, template)

    # ------------------------------------------------------------------
    # Producers
    # ------------------------------------------------------------------

    def _project_summary(self, bundle: ProjectBundle) -> str:
        return formatters.format_project(bundle.project, bundle.client)

    def _pairs(self, bundle: ProjectBundle):
        return formatters.prepare_question_answers(bundle.responses, bundle.questions, bundle.stakeholders)

    def _question_answers(self, bundle: ProjectBundle) -> str:
        return formatters.format_question_answers(self._pairs(bundle))

    def _responses_by_category(self, bundle: ProjectBundle) -> str:
        return formatters.format_responses_by_category(self._pairs(bundle))

    def _responses_by_stakeholder(self, bundle: ProjectBundle) -> str:
        return formatters.format_responses_by_stakeholder(
            bundle.responses, bundle.questions, bundle.stakeholders
        )

    def _stakeholder_profiles(self, bundle: ProjectBundle) -> str:
        profiles = formatters.prepare_stakeholder_profiles(bundle.stakeholders, bundle.responses)
        return formatters.format_stakeholder_profiles(profiles)

    def _file_content(self, bundle: ProjectBundle) -> str:
        uploads = [u for u in bundle.uploads if u.include_in_generation]
        pending = [u.file_name for u in uploads if not u.has_usable_content()]
        if pending:
            logger.info(f"{len(pending)} uploads without extracted content: {', '.join(pending)}")
        return formatters.format_uploads(uploads)

    def _questions_list(self, bundle: ProjectBundle) -> str:
        return formatters.format_questions(bundle.questions)

"""
Process Scan Platform
Prompt Registry.

Prompt template management with:
    - Built-in default templates for every assistant capability
    - Optional YAML overrides loaded from PROMPTS_DIR
    - {{variable}} rendering
    - Version tracking

Usage:
    from app.ai.prompt_registry import PromptRegistry
    registry = PromptRegistry()
    messages = registry.render("lifecycle_generation",
                               document_summaries="...")
"""

import logging
import re
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


class PromptTemplate:
    """A single prompt template with metadata."""

    def __init__(self, name: str, version: str, system: str, user: str,
                 description: str = "", metadata: dict | None = None):
        self.name = name
        self.version = version
        self.system = system
        self.user = user
        self.description = description
        self.metadata = metadata or {}

    def render(self, **variables) -> list[dict]:
        """
        Render template with variables, returning chat messages.

        Variables are replaced using {{variable_name}} syntax.

        Returns:
            List of message dicts: [{"role": "system", "content": "..."}, ...]
        """
        system_rendered = self._substitute(self.system, variables)
        user_rendered = self._substitute(self.user, variables)

        messages = []
        if system_rendered.strip():
            messages.append({"role": "system", "content": system_rendered})
        if user_rendered.strip():
            messages.append({"role": "user", "content": user_rendered})
        return messages

    @staticmethod
    def _substitute(template: str, variables: dict) -> str:
        """Replace {{var}} placeholders with values."""
        def replacer(match):
            key = match.group(1).strip()
            return str(variables.get(key, f"{{{{{key}}}}}"))
        return re.sub(r'\{\{(\s*\w+\s*)\}\}', replacer, template)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "version": self.version,
            "description": self.description,
            "system_preview": self.system[:200],
            "user_preview": self.user[:200],
        }


class PromptRegistry:
    """
    Registry for loading and managing prompt templates.

    Built-in templates are always registered. YAML files in ``prompts_dir``
    override them by (name, version).
    """

    def __init__(self, prompts_dir: str | None = None):
        self._prompts_dir = prompts_dir
        self._templates: dict[str, dict[str, PromptTemplate]] = {}  # name → {version → template}
        self._load_defaults()
        if prompts_dir:
            self._load_from_dir()

    def _load_defaults(self):
        for tpl in _DEFAULT_TEMPLATES:
            self._register(tpl)

    def _load_from_dir(self):
        """Load prompt templates from YAML files."""
        prompts_path = Path(self._prompts_dir)
        if not prompts_path.exists():
            logger.info("Prompts directory not found: %s. Using defaults only.", self._prompts_dir)
            return

        for yaml_file in sorted(prompts_path.glob("*.yaml")):
            try:
                with open(yaml_file, "r", encoding="utf-8") as f:
                    data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                logger.error("Failed to load prompt %s: %s", yaml_file.name, e)
                continue
            if not data or not isinstance(data, dict):
                continue

            tpl = PromptTemplate(
                name=data.get("name", yaml_file.stem),
                version=str(data.get("version", "v1")),
                system=data.get("system", ""),
                user=data.get("user", ""),
                description=data.get("description", ""),
                metadata=data.get("metadata", {}),
            )
            self._register(tpl)
            logger.info("Loaded prompt template: %s (%s) from %s",
                        tpl.name, tpl.version, yaml_file.name)

    def _register(self, template: PromptTemplate):
        if template.name not in self._templates:
            self._templates[template.name] = {}
        self._templates[template.name][template.version] = template

    def get(self, name: str, version: str = "v1") -> PromptTemplate | None:
        versions = self._templates.get(name, {})
        return versions.get(version)

    def render(self, name: str, version: str = "v1", **variables) -> list[dict]:
        """
        Render a prompt template with variables.

        Raises:
            KeyError: If template not found.
        """
        tpl = self.get(name, version)
        if not tpl:
            raise KeyError(f"Prompt template not found: {name} v{version}")
        return tpl.render(**variables)

    def list_templates(self) -> list[dict]:
        result = []
        for versions in self._templates.values():
            for tpl in versions.values():
                result.append(tpl.to_dict())
        return result


# ── Built-in Default Templates ────────────────────────────────────────────────

_DEFAULT_TEMPLATES = [
    PromptTemplate(
        name="document_summary",
        version="v1",
        description="Summarise an uploaded scan document using its type-specific instructions",
        system="{{agent_role}}",
        user=(
            "Document type: {{document_type}}\n"
            "Document name: {{file_name}}\n\n"
            "{{company_section}}"
            "{{instructions}}\n\n"
            "Document content:\n{{content}}"
        ),
    ),
    PromptTemplate(
        name="document_chat",
        version="v1",
        description="Data room assistant answering questions from retrieved document sections",
        system=(
            "You are Ora, an AI assistant for a business-process scan data room. You help "
            "consultants upload and prepare the documents needed to analyse a business.\n\n"
            "Your responsibilities:\n"
            "1. Answer questions about documents uploaded to the data room\n"
            "2. Explain which documents the scan needs (HRIS Reports, Org. Structure, Business "
            "Strategy Documents, Cost Breakdown, Technology Roadmaps, General Ledger, Data "
            "Capability) and why each matters\n"
            "3. Check whether a document's content matches its labelled type and say so when "
            "it does not\n"
            "4. Refer to the company by name and use its industry and country when relevant\n\n"
            "Only use the provided document context to answer questions about document content. "
            "If the context has nothing relevant, say so clearly.\n\n"
            "Use British English spelling and Markdown formatting (### headings, **bold**, "
            "- bullet points)."
        ),
        user="Context information from documents:\n\n{{context}}\n\nQuestion: {{query}}",
    ),
    PromptTemplate(
        name="company_research",
        version="v1",
        description="Markdown company profile from the basic company details",
        system="You are an expert business analyst specializing in company research and corporate profiling.",
        user=(
            "Act as an expert business analyst specializing in company research and corporate "
            "profiling. Discover, summarize and organize detailed information about the company "
            "below using publicly available knowledge. Present your findings in markdown under "
            "these ## sections:\n\n"
            "Company Overview\n"
            "History & Milestones\n"
            "Industry & Market Position\n"
            "Size & Structure\n"
            "Products & Services\n"
            "Recent News & Strategic Initiatives\n"
            "Customer Support Insights\n"
            "Resources & Process Documentation\n"
            "Quality Certifications or Standards\n\n"
            "Company to research:\n"
            "Name: {{name}}\n"
            "Website: {{website}}\n"
            "Country: {{country}}\n"
            "Industry: {{industry}}\n"
            "Description: {{description}}\n\n"
            "Write between 500 and 800 words."
        ),
    ),
    PromptTemplate(
        name="strategic_objectives",
        version="v1",
        description="Generate 4-8 strategic objectives from company info and lifecycles",
        system=(
            "You are a business strategy expert specialized in creating strategic objectives "
            "for organizations in various industries."
        ),
        user=(
            "Based on the company information and business lifecycles below, generate 4-8 "
            "strategic objectives for this organization.\n\n"
            "{{company_section}}\n\n"
            "{{lifecycles_section}}\n\n"
            "For each objective provide a clear, concise name and a 2-4 sentence description "
            "of what it aims to achieve and how it fits the company's context. Objectives must "
            "be SMART, cover different aspects of the business and each MUST have a unique name.\n\n"
            "Respond in the following JSON format only:\n"
            '{"objectives": [{"name": "Objective Name", "description": "Objective description"}]}'
        ),
    ),
    PromptTemplate(
        name="scoring_criteria",
        version="v1",
        description="Low / medium / high impact criteria for one strategic objective",
        system=(
            "You are a business strategy expert specialized in creating evaluation criteria "
            "for strategic objectives."
        ),
        user=(
            "Based on the strategic objective and company context below, define what low, "
            "medium and high impact look like for this objective.\n\n"
            "{{company_section}}\n\n"
            "{{lifecycles_section}}\n\n"
            "{{strategy_docs_section}}\n\n"
            "Strategic Objective:\n"
            "Title: {{objective_name}}\n"
            "Description: {{objective_description}}\n\n"
            "Low Impact (Score: 1), Medium Impact (Score: 2), High Impact (Score: 3). Each "
            "level is 1-2 sentences, specific and measurable where possible.\n\n"
            "Respond only in the following JSON format:\n"
            '{"scoring_criteria": {"low": "...", "medium": "...", "high": "..."}}'
        ),
    ),
    PromptTemplate(
        name="document_brief",
        version="v1",
        description="300-500 word summary of a document from its most relevant sections",
        system="You are a business analyst who extracts and summarizes key information from business documents.",
        user=(
            "Summarize the key information in this {{document_type}} document named "
            "'{{file_name}}' in 300-500 words. Focus on details that reveal how the company "
            "operates.\n\n"
            "Document sections:\n{{sections}}"
        ),
    ),
    PromptTemplate(
        name="lifecycle_generation",
        version="v1",
        description="Identify 3-6 core business lifecycles grounded in the APQC PCF",
        system=(
            "You are a business process design expert specialized in applying the APQC Process "
            "Classification Framework to identify core business lifecycles for organizations."
        ),
        user=(
            "You are analyzing business documents to identify the key business lifecycles for "
            "a company. Based on the document summaries provided, generate 3-6 business "
            "lifecycles that represent the core operational processes of the organization.\n\n"
            "For each lifecycle provide a clear, concise name and a 3-5 sentence description "
            "of what it encompasses and why it matters to this business. Draw from APQC PCF "
            "categories (Develop Vision and Strategy, Market and Sell Products/Services, "
            "Deliver Products/Services, Manage Customer Service, Develop and Manage Human "
            "Capital, Manage Financial Resources, ...) and adapt them to the company. Focus on "
            "end-to-end processes that span multiple functions.\n\n"
            "Document summaries:\n\n{{document_summaries}}\n\n"
            "Respond in the following JSON format only:\n"
            '{"lifecycles": [{"name": "Lifecycle Name", "description": "Lifecycle description"}]}'
        ),
    ),
    PromptTemplate(
        name="process_generation",
        version="v1",
        description="Process categories and groups for one lifecycle",
        system=(
            "You are a business process expert specializing in organizational process design "
            "across various industries."
        ),
        user=(
            "Generate a comprehensive list of process categories and their process groups for "
            "the following company lifecycle.\n\n"
            "Lifecycle Name: {{lifecycle_name}}\n"
            "Lifecycle Description: {{lifecycle_description}}\n\n"
            "Company information:\n{{company_section}}\n\n"
            "Instructions:\n"
            "1. Reference the APQC Process Classification Framework for the company's industry.\n"
            "2. Nest process groups inside process categories.\n"
            "3. Give every category and group a short description.\n"
            "4. Generate between 5-7 process categories, each with 3-7 process groups.\n\n"
            "Respond ONLY with a valid JSON object in this structure:\n"
            '{"process_categories": [{"name": "Category Name", "description": "...", '
            '"process_groups": [{"name": "Process Group Name", "description": "..."}]}]}'
        ),
    ),
    PromptTemplate(
        name="stakeholder_suggestion",
        version="v1",
        description="Pick 2-4 HRIS employees as stakeholders for a lifecycle",
        system=(
            "You are an organizational development expert specializing in matching roles with "
            "business processes."
        ),
        user=(
            "Identify the most relevant employees to serve as stakeholders for this business "
            "lifecycle.\n\n"
            "Lifecycle Name: {{lifecycle_name}}\n"
            "Lifecycle Description: {{lifecycle_description}}\n\n"
            "Company Context:\n{{company_section}}\n\n"
            "Process categories and groups:\n{{processes_json}}\n\n"
            "Available Employees:\n{{employees_json}}\n\n"
            "Select 2-4 employees whose roles best align with the key processes and complement "
            "each other. Respond ONLY with a valid JSON array:\n"
            '[{"id": "employee_id", "name": "Employee Name", "role": "Employee Role"}]'
        ),
    ),
    PromptTemplate(
        name="pain_point_extraction",
        version="v1",
        description="Extract scored pain points and a markdown summary from interview transcripts",
        system=(
            "You are an assistant that analyses interview conversations about pain points in "
            "a business context and turns them into structured, scored records."
        ),
        user=(
            "Lifecycle: {{lifecycle_name}}\n\n"
            "Process groups (assign each pain point to exactly one of these names, or "
            "\"Unassigned\"):\n{{process_groups}}\n\n"
            "Strategic objectives (score each pain point 0-3 against every key):\n"
            "{{objectives}}\n\n"
            "Existing pain points (keep their ids and names when the same issue recurs):\n"
            "{{existing_pain_points}}\n\n"
            "Transcript:\n{{transcript}}\n\n"
            "Provide:\n"
            "1. The pain points mentioned, each with id (if existing), name, description, "
            "assigned_process_group and one numeric field per objective key\n"
            "2. A one-paragraph overallSummary\n"
            "3. A markdown summary with ## headings covering key pain points, potential "
            "solutions and areas of agreement or disagreement\n\n"
            "Respond in the following JSON format only:\n"
            '{"pain_points": [{"id": "...", "name": "...", "description": "...", '
            '"assigned_process_group": "..."}], "overallSummary": "...", "summary": "..."}'
        ),
    ),
    PromptTemplate(
        name="interview_chat",
        version="v1",
        description="Ora interview copilot for a lifecycle",
        system=(
            "You are Ora, a pain point interview assistant focused on helping identify and "
            "document pain points in business lifecycles. You have detailed knowledge about the "
            "company and their specific business processes. Your goal is to conduct a thorough "
            "but concise interview to uncover challenges, inefficiencies, and areas for "
            "improvement within the specific lifecycle process categories and groups. When the "
            "user asks about specific processes, refer to the detailed process information "
            "provided."
        ),
        user="Context information:\n\n{{context}}\n\nQuestion: {{query}}",
    ),
]

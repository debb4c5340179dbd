"""
Required document types of a scan and their summarisation defaults.

Every new scan gets one placeholder Document per entry, pre-filled with the
type's description, summarisation prompt and agent role.
"""

HRIS_REPORTS = "HRIS Reports"
STRATEGY_DOCUMENTS = "Business Strategy Documents"

REQUIRED_DOCUMENT_TYPES = (
    HRIS_REPORTS,
    "Org. Structure",
    STRATEGY_DOCUMENTS,
    "Cost Breakdown",
    "Technology Roadmaps",
    "General Ledger",
    "Data Capability",
)

FALLBACK_PROMPT = "Summarize the key information from this document."

DOCUMENT_DESCRIPTIONS = {
    HRIS_REPORTS: "Upload employee lists, roles and headcount reports exported from the HR system.",
    "Org. Structure": "Upload the company's organizational structure and hierarchy.",
    STRATEGY_DOCUMENTS: "Upload the company's strategic plans and initiatives.",
    "Cost Breakdown": "Upload cost reports broken down by department, function or process.",
    "Technology Roadmaps": "Upload current system landscape and planned technology investments.",
    "General Ledger": "Upload the chart of accounts or general ledger extracts.",
    "Data Capability": "Upload data inventories, data governance and analytics capability assessments.",
}

DEFAULT_PROMPTS = {
    HRIS_REPORTS: (
        "Summarize the workforce described in this report: headcount by department, key roles, "
        "reporting lines and any notable staffing gaps or concentrations."
    ),
    "Org. Structure": (
        "Summarize the organizational structure: business units, departments, leadership roles, "
        "spans of control and how responsibilities are divided."
    ),
    STRATEGY_DOCUMENTS: (
        "Summarize the strategic goals, priorities, initiatives and success measures described "
        "in this document, including timelines where stated."
    ),
    "Cost Breakdown": (
        "Summarize the main cost categories, the largest cost drivers, cost by function or "
        "process and any trends or anomalies."
    ),
    "Technology Roadmaps": (
        "Summarize the current systems, planned technology changes, integration points and the "
        "business processes each initiative supports."
    ),
    "General Ledger": (
        "Summarize the account structure, major expense and revenue accounts and what they "
        "reveal about how the business operates."
    ),
    "Data Capability": (
        "Summarize the data sources, data quality, governance practices and analytics "
        "capabilities described in this document."
    ),
}

DOCUMENT_AGENT_ROLES = {
    HRIS_REPORTS: "You are an HR analyst who reads workforce reports to understand roles and capacity.",
    "Org. Structure": "You are an organizational design consultant who analyses company structures.",
    STRATEGY_DOCUMENTS: "You are a strategy consultant who distils strategic plans into clear priorities.",
    "Cost Breakdown": "You are a financial analyst who identifies cost drivers in operating cost reports.",
    "Technology Roadmaps": "You are an enterprise architect who reviews technology landscapes and roadmaps.",
    "General Ledger": "You are a management accountant who interprets general ledger structures.",
    "Data Capability": "You are a data strategy consultant who assesses data maturity.",
}


def default_prompt(document_type: str) -> str:
    return DEFAULT_PROMPTS.get(document_type, FALLBACK_PROMPT)

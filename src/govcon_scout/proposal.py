from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence

import structlog

from .ai import GenerationError, TextGenerator
from .config import CompanyConfig
from .models import Award, OpportunityRecord

log = structlog.get_logger(__name__)

DEFAULT_PRICING_VALUE = 275_000.0

PRICING_SPLIT = (
    ("Engineering & Design", 0.15),
    ("Equipment & Materials", 0.45),
    ("Integration & Programming", 0.25),
    ("Installation & Commissioning", 0.10),
    ("Training & Documentation", 0.05),
)

# First match on the award description wins.
OUTREACH_CAPABILITIES = (
    (("vision", "inspection"), "AI-powered vision systems and automated inspection"),
    (
        ("warehouse", "logistics", "material handling"),
        "warehouse automation and material handling systems",
    ),
    (("manufacturing", "assembly"), "robotic manufacturing cells and production automation"),
    (("amr", "mobile robot", "agv"), "autonomous mobile robots (AMR) and AGV integration"),
    (("weld",), "robotic welding systems and automation"),
    (("conveyor", "palletiz"), "conveyor systems and robotic palletizing"),
)
DEFAULT_CAPABILITY = "industrial robotics integration and automation systems"

SECTION_MAX_TOKENS = 2000

SECTION_PROMPTS = {
    "executive": """Write a compelling Executive Summary for a federal government proposal.

OPPORTUNITY:
- Title: {title}
- Agency: {agency}
- Solicitation: {solicitation}
- Estimated Value: {value}
- Description: {description}

COMPANY:
- Name: {company}
- CAGE: {cage}
- UEI: {uei}
- Headquarters: {hq}
- Sales Office: {sales}
- Core Capabilities: {capabilities}

Write a 1-2 page executive summary that:
1. Opens with a clear statement of understanding
2. Highlights 3-4 key discriminators
3. Summarizes the technical approach
4. Emphasizes relevant experience
5. Closes with confidence statement

Use professional federal proposal language. Include specific company details. Format with clear headers.""",
    "technical": """Write a Technical Approach section for a federal government proposal.

OPPORTUNITY:
- Title: {title}
- Agency: {agency}
- Description: {description}
- Value: {value}

COMPANY CAPABILITIES:
{capability_lines}

Write a detailed technical approach that:
1. Demonstrates understanding of requirements
2. Describes the proposed solution with specific technologies
3. Outlines implementation phases/tasks
4. Identifies tools, methodologies, and standards
5. Highlights innovations and value-adds
6. Addresses quality and risk mitigation

Use technical language appropriate for federal evaluators. Format with numbered sections and clear headers.""",
    "management": """Write a Management Plan section for a federal government proposal.

OPPORTUNITY:
- Title: {title}
- Agency: {agency}
- Value: {value}

COMPANY:
- Name: {company}
- Locations: HQ in {hq}, Sales in {sales}

Write a management plan that includes:
1. Organizational structure with key roles
2. Communication plan (meetings, reports, escalation)
3. Quality management approach
4. Schedule management
5. Risk management framework
6. Subcontractor management (if applicable)

Include an organizational chart description. Use professional federal proposal language.""",
    "personnel": """Write a Key Personnel section for a federal government proposal.

OPPORTUNITY:
- Title: {title}
- Agency: {agency}
- Requirements: {description}

COMPANY:
- Name: {company}
- Certifications: {certs}

Write key personnel descriptions for:
1. Program Manager - responsible for overall contract execution
2. Technical Lead - responsible for technical solution delivery
3. Quality Assurance Manager - responsible for quality control

For each person include role and responsibilities, required qualifications (education,
certifications, clearances), years of experience required and relevant skills.

Use [NAME] as placeholder for actual names. Format as a professional proposal section.""",
    "past": """Write a Past Performance section for a federal government proposal.

OPPORTUNITY:
- Title: {title}
- Agency: {agency}
- Description: {description}

COMPANY:
- Name: {company}
- Capabilities: {capabilities}

Write past performance narratives for 3 relevant contracts. For each include:
1. Contract name and number
2. Customer agency and POC (use [POC NAME] placeholder)
3. Contract value and period
4. Scope of work
5. Relevance to current opportunity
6. Key achievements and metrics
7. Problems encountered and solutions

Focus on contracts similar in scope, complexity, and value. Use [PLACEHOLDER] for specific details to be filled in.""",
    "quality": """Write a Quality Assurance section for a federal government proposal.

OPPORTUNITY:
- Title: {title}
- Agency: {agency}

COMPANY:
- Name: {company}
- Certifications: {certs}

Write a quality assurance plan that includes:
1. QA/QC organizational responsibilities
2. Quality control procedures
3. Inspection and testing protocols
4. Documentation and reporting
5. Corrective action procedures
6. Continuous improvement approach
7. Relevant certifications and standards (ISO, AS9100, etc.)

Use professional quality management language appropriate for federal proposals.""",
    "risk": """Write a Risk Mitigation section for a federal government proposal.

OPPORTUNITY:
- Title: {title}
- Agency: {agency}
- Description: {description}

Write a risk management plan that includes:
1. Risk identification methodology
2. Risk assessment matrix (likelihood x impact)
3. Top 5 identified risks with description, likelihood (Low/Medium/High),
   impact (Low/Medium/High), mitigation strategy and contingency plan
4. Risk monitoring and reporting approach

Focus on realistic risks for this type of work. Use professional risk management language.""",
}


@dataclass(slots=True)
class Proposal:
    text: str
    method: str


def draft_proposal(
    opportunity: OpportunityRecord,
    company: CompanyConfig,
    today: date,
    naics_codes: Sequence[str] = (),
    generator: TextGenerator | None = None,
) -> Proposal:
    """AI draft when a generator is available, otherwise the fixed template."""
    if generator is not None:
        prompt = build_proposal_prompt(opportunity, company, today)
        try:
            return Proposal(text=generator.generate(prompt), method="ai-generated")
        except GenerationError as exc:
            log.warning("proposal_generation_failed", error=str(exc), title=opportunity.title)

    return Proposal(
        text=template_proposal(opportunity, company, today, naics_codes),
        method="template",
    )


def draft_section(
    section: str,
    opportunity: OpportunityRecord,
    company: CompanyConfig,
    generator: TextGenerator,
) -> str:
    """Draft one proposal section; unknown section names get the executive summary."""
    prompt = build_section_prompt(section, opportunity, company)
    return generator.generate(prompt, max_tokens=SECTION_MAX_TOKENS)


def build_section_prompt(section: str, opp: OpportunityRecord, company: CompanyConfig) -> str:
    key = section.strip().lower()
    if key not in SECTION_PROMPTS:
        log.info("unknown_proposal_section", section=section, using="executive")
        key = "executive"
    capabilities = company.capabilities or ["Industrial robotics integration"]
    context = {
        "title": opp.title or "Government Contract",
        "agency": opp.agency or "Federal Agency",
        "solicitation": opp.solicitation_number or opp.notice_id or "N/A",
        "value": format_value(opp.award_value),
        "description": opp.description,
        "company": company.name,
        "cage": company.cage or "N/A",
        "uei": company.uei or "N/A",
        "hq": company.headquarters or "N/A",
        "sales": company.sales_office or "N/A",
        "capabilities": ", ".join(capabilities),
        "capability_lines": "\n".join(f"- {item}" for item in capabilities),
        "certs": ", ".join(company.certifications) or "N/A",
    }
    return SECTION_PROMPTS[key].format(**context)


def format_value(value: float) -> str:
    return f"${value:,.0f}" if value > 0 else "TBD"


def format_date(today: date) -> str:
    return f"{today:%B} {today.day}, {today.year}"


def build_proposal_prompt(opp: OpportunityRecord, company: CompanyConfig, today: date) -> str:
    return f"""You are a proposal writer for {company.name}, a certified small business automation integrator specializing in robotics, vision systems, and factory automation.

Generate a professional government contract proposal for:
- Title: {opp.title}
- Solicitation: {opp.solicitation_number or 'N/A'}
- Agency: {opp.agency}
- Value: {format_value(opp.award_value)}
- Description: {opp.description}

Use this EXACT format with markdown headers:

# Technical Proposal for [Title]

# Solicitation Information
Solicitation: [Number]
Agency: [Agency Name]
Submitted by: {company.name}
Date: {format_date(today)}

## Primary Contact
{_contact_lines(company)}

# 1. Executive Summary
[3 paragraphs: understanding of requirement, proposed solution, value proposition]

# 2. Technical Approach
## 2.1 System Design
## 2.2 Implementation Phases
## 2.3 Quality Assurance

# 3. Management Approach
## 3.1 Project Management
## 3.2 Key Personnel
## 3.3 Communication Plan

# 4. Past Performance
[3 relevant projects with Contract Value, Scope, Outcomes]

# 5. Corporate Capability

# 6. Pricing Summary
[markdown table: Category | Estimated Amount | % of Total]

# 7. Contact

Generate professional, detailed content for each section. Be specific to the opportunity requirements."""


def template_proposal(
    opp: OpportunityRecord,
    company: CompanyConfig,
    today: date,
    naics_codes: Sequence[str] = (),
) -> str:
    value = format_value(opp.award_value)
    agency = opp.agency or "Federal Agency"
    sections = [
        f"# Technical Proposal for {opp.title}",
        "# Solicitation Information",
        f"Solicitation: {opp.solicitation_number or 'N/A'}",
        f"Agency: {agency}",
        f"Submitted by: {company.name}",
        f"Date: {format_date(today)}",
        "## Primary Contact",
        _contact_lines(company),
        "# 1. Executive Summary",
        f"{company.name} is pleased to submit this proposal in response to {agency}'s "
        f"requirement for {opp.title}.",
        f"{company.name} is well positioned to deliver a turnkey solution that meets all "
        "technical and performance requirements, integrates cleanly with existing operations "
        "and safety standards, and provides a robust platform for future automation expansion.",
        f"The estimated value of this project is {value}, inclusive of engineering, equipment, "
        "integration, installation, and training.",
        "# 2. Technical Approach",
        "## 2.1 System Design",
        "- **Robotics:** Industrial or collaborative robots selected to match payload, reach, "
        "and cycle-time requirements.",
        "- **Vision & Sensing:** Machine vision for part detection, quality inspection, and "
        "guidance.",
        "- **Controls & HMI:** PLC platform with an industrial HMI, safety PLC, and interlocks.",
        "- **Cell Infrastructure:** Fixtures, tooling, guarding, and lockout/tagout hardware.",
        "- **Integration:** Interfaces to existing upstream and downstream equipment.",
        "## 2.2 Implementation Phases",
        "1. **Discovery & Design (Weeks 1–4):** Requirements, site assessment, and functional "
        "design review.",
        "2. **Fabrication & Build (Weeks 5–10):** Procurement, fabrication, panel build, and "
        "software development.",
        "3. **Integration & Factory Acceptance Testing (Weeks 11–14):** Integration, "
        "programming, and witnessed FAT.",
        "4. **Installation & Site Acceptance Testing (Weeks 15–18):** Installation, "
        "commissioning, and SAT.",
        "5. **Support & Optimization (Post-Installation):** Warranty support and process "
        "optimization.",
        "## 2.3 Quality Assurance",
        "Quality is managed through a process aligned with ISO 9001 principles: documented "
        "change control, standardized FAT and SAT test plans, and as-built documentation.",
        "# 3. Management Approach",
        "## 3.1 Project Management",
        "A milestone-based plan with a scope, schedule, and budget baseline, weekly status "
        "reports, and review gates at Design, FAT, and SAT. A risk register is kept from "
        "kickoff.",
        "## 3.2 Key Personnel",
        "- **Project Manager:** Overall delivery, schedule, and communication.",
        "- **Lead Robotics Engineer:** Robot selection, path programming, and cycle time.",
        "- **Controls Engineer:** Controls architecture, safety integration, and HMI.",
        "- **Vision Systems Specialist:** Camera selection, lighting, and inspection algorithms.",
        "## 3.3 Communication Plan",
        "Weekly project calls, monthly executive summaries, a shared document portal, and "
        "on-call support during installation and ramp-up.",
        "# 4. Past Performance",
        "Representative project summaries are provided on request and in the attached past "
        "performance volume.",
        "# 5. Corporate Capability",
        _capability_lines(company, naics_codes),
        "# 6. Pricing Summary",
        f"The following high-level cost breakdown is aligned with an estimated total project "
        f"value of {value}.",
        _pricing_table(opp.award_value),
        "This pricing summary is for planning purposes and may be refined based on final "
        "technical scope.",
        "# 7. Contact",
        _contact_lines(company),
        "We appreciate the opportunity to propose on this project.",
    ]
    return "\n\n".join(sections)


def outreach_email(
    award: Award, company: CompanyConfig, naics_codes: Sequence[str] = ()
) -> tuple[str, str]:
    description = award.description
    lowered = description.lower()
    capability = DEFAULT_CAPABILITY
    for terms, phrase in OUTREACH_CAPABILITIES:
        if any(term in lowered for term in terms):
            capability = phrase
            break

    short = description[:60] + "..." if len(description) > 60 else description
    subject = f"Subcontracting Support – {short}"

    scope = description[:150].lower() + ("..." if len(description) > 150 else "")
    qualifications = [f"• {cert}" for cert in company.certifications]
    if company.cage or company.uei:
        qualifications.append(f"• CAGE Code: {company.cage or 'N/A'} | UEI: {company.uei or 'N/A'}")
    if naics_codes:
        qualifications.append(f"• NAICS: {', '.join(naics_codes)}")

    body = "\n\n".join(
        part
        for part in (
            f"Dear {award.recipient_name} Team,",
            f"I noticed your company was recently awarded a contract with {award.agency} "
            f"involving {scope}.",
            f"{company.name} specializes in {capability}. If your team needs support executing "
            "the robotics, automation, or vision systems portion of this contract, we'd welcome "
            "the opportunity to discuss teaming.",
            "Our qualifications:\n" + "\n".join(qualifications) if qualifications else "",
            "Would you be available for a brief call this week to explore potential "
            "collaboration?",
            "Best regards,\n\n" + _contact_lines(company),
        )
        if part
    )
    return subject, body


def _contact_lines(company: CompanyConfig) -> str:
    lines = [company.name]
    offices = " | ".join(
        part
        for part in (
            f"{company.headquarters} (HQ)" if company.headquarters else "",
            f"{company.sales_office} (Sales)" if company.sales_office else "",
        )
        if part
    )
    if offices:
        lines.append(offices)
    if company.uei or company.cage:
        lines.append(f"UEI: {company.uei or 'N/A'} | CAGE: {company.cage or 'N/A'}")
    contact = " | ".join(part for part in (company.phone, company.email, company.website) if part)
    if contact:
        lines.append(contact)
    return "\n".join(lines)


def _capability_lines(company: CompanyConfig, naics_codes: Sequence[str]) -> str:
    lines = [f"{company.name} is a small-business automation integrator."]
    if company.capabilities:
        lines.append("**Core Competencies:**")
        lines.extend(f"- {item}" for item in company.capabilities)
    lines.append("**Company Data:**")
    lines.append(f"- UEI: {company.uei or 'N/A'}")
    lines.append(f"- CAGE: {company.cage or 'N/A'}")
    if naics_codes:
        lines.append(f"- Primary NAICS Codes: {', '.join(naics_codes)}")
    if company.certifications:
        lines.append("**Certifications:**")
        lines.extend(f"- {cert}" for cert in company.certifications)
    return "\n".join(lines)


def _pricing_table(value: float) -> str:
    total = value if value > 0 else DEFAULT_PRICING_VALUE
    rows = [
        "| Category | Estimated Amount | % of Total |",
        "|----------|------------------|------------|",
    ]
    for category, share in PRICING_SPLIT:
        rows.append(f"| {category} | ${round(total * share):,} | {round(share * 100)}% |")
    rows.append(f"| **Total Estimated Value** | **{format_value(total)}** | **100%** |")
    return "\n".join(rows)

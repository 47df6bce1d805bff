"""Prompt text for the provider and the deterministic fallback posting."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta

from jobrotator.jobs.seniority import SeniorityCategory
from jobrotator.schemas.entities import Entity
from jobrotator.schemas.jobs import GeneratedJob

APPLICATION_WINDOW_DAYS = 30
DEFAULT_CATEGORY_LABEL = "EU Affairs"


@dataclass(frozen=True, slots=True)
class PostingDetails:
    degree: str
    fallback_degree: str
    second_language: str
    training_budget: str
    leave_days: int
    bonus: str
    hybrid: str
    contract: str
    personal_drive: str
    opportunity: str
    fallback_opportunity: str
    deliverable: str
    satisfaction: str
    stakeholders: str
    accuracy: str


POSTING_DETAILS: dict[str, PostingDetails] = {
    "intern": PostingDetails(
        degree="Bachelor's degree",
        fallback_degree="Bachelor's degree",
        second_language="preferably French or German (B2+)",
        training_budget="1,000",
        leave_days=20,
        bonus="benefits package",
        hybrid="3 days office, 2 days remote",
        contract="6-month internship program",
        personal_drive="Eager to learn",
        opportunity="launch your career",
        fallback_opportunity="gain valuable experience",
        deliverable="2 policy briefings monthly",
        satisfaction="85%",
        stakeholders="10+",
        accuracy="90%",
    ),
    "junior": PostingDetails(
        degree="Master's degree",
        fallback_degree="Master's degree or higher",
        second_language="preferably French or German (B2+)",
        training_budget="2,500",
        leave_days=25,
        bonus="benefits package",
        hybrid="3 days office, 2 days remote",
        contract="Permanent contract",
        personal_drive="Self-motivated",
        opportunity="develop your expertise",
        fallback_opportunity="develop your career",
        deliverable="3 policy analyses quarterly",
        satisfaction="90%",
        stakeholders="15+",
        accuracy="95%",
    ),
    "mid-level": PostingDetails(
        degree="Master's or PhD",
        fallback_degree="Master's degree or higher",
        second_language="preferably French or German (B2+)",
        training_budget="5,000",
        leave_days=30,
        bonus="performance bonuses",
        hybrid="3 days office, 2 days remote",
        contract="Permanent contract",
        personal_drive="Proven leadership",
        opportunity="lead strategic initiatives",
        fallback_opportunity="make strategic impact",
        deliverable="5 major policy campaigns annually",
        satisfaction="95%",
        stakeholders="25+",
        accuracy="95%",
    ),
    "senior": PostingDetails(
        degree="Master's or PhD",
        fallback_degree="Master's degree or higher",
        second_language="French/German (C1+)",
        training_budget="10,000",
        leave_days=30,
        bonus="performance bonuses",
        hybrid="flexible arrangement",
        contract="Permanent contract",
        personal_drive="Proven leadership",
        opportunity="lead strategic initiatives",
        fallback_opportunity="make strategic impact",
        deliverable="10+ strategic initiatives per year",
        satisfaction="95%",
        stakeholders="50+",
        accuracy="95%",
    ),
}


def posting_details(category: SeniorityCategory) -> PostingDetails:
    return POSTING_DETAILS.get(category.name, POSTING_DETAILS["junior"])


def salary_band_text(category: SeniorityCategory) -> str:
    low, high = category.salary_range
    return f"€{low:,}-€{high:,}"


def application_deadline(today: date | None = None) -> str:
    deadline = (today or date.today()) + timedelta(days=APPLICATION_WINDOW_DAYS)
    return deadline.strftime("%d/%m/%Y")


def start_month(today: date | None = None) -> str:
    deadline = (today or date.today()) + timedelta(days=APPLICATION_WINDOW_DAYS)
    first_of_next = (deadline.replace(day=1) + timedelta(days=32)).replace(day=1)
    return first_of_next.strftime("%B %Y")


def build_system_prompt(category: SeniorityCategory) -> str:
    return (
        "You are a recruiting copywriter specializing in EU policy jobs. Create comprehensive, detailed job "
        "postings inspired by high-quality corporate job ads. Output ONLY valid JSON. No disclaimers, no generic "
        "phrases, no emojis. Be specific and concrete with measurable deliverables and KPIs appropriate for "
        f"{category.name} level positions. Make descriptions 2500-4000 words with rich detail."
    )


def build_user_prompt(
    entity: Entity,
    category: SeniorityCategory,
    title_prefix: str,
    *,
    today: date | None = None,
) -> str:
    details = posting_details(category)
    name = entity.display_name
    level = category.name
    interests = ", ".join(entity.interests) or "N/A"
    contract = f"{details.contract} starting {start_month(today)}"
    return f"""Generate a {level} level job posting for: {name}

Organization details:
- Description: {entity.description or "N/A"}
- Goals: {entity.goals or "N/A"}
- Focus areas: {interests}
- Category: {entity.registration_category or "N/A"}

Job requirements:
- Seniority: {level}
- Experience: {category.experience_years} years
- Title should include: {title_prefix}
- Location: Brussels, Belgium
- Salary: {salary_band_text(category)} per year

Create a detailed professional job posting inspired by this structure:

ORGANIZATION OVERVIEW: Brief about the company and its mission (2-3 paragraphs)

YOUR MISSION: What you'll be doing and why it matters (1-2 paragraphs)

KEY RESPONSIBILITIES:
- Lead specific initiatives with measurable outcomes
- Monitor and analyze policy developments
- Build and sustain networks
- Coordinate meetings and stakeholder activities
- [Add 4-6 more specific responsibilities]

DELIVERABLES & KPIs:
- Specific deliverable with quantity and timeline (e.g., "Produce 2 policy briefings monthly")
- Measurable performance metrics (e.g., "Maintain 85% attendance at stakeholder meetings")
- Quantifiable targets (e.g., "Complete 4 research projects quarterly")
- [Add 3-5 more specific KPIs appropriate for {level} level]

REQUIREMENTS:
- {details.degree}
- Language: English (C1+) and {details.second_language}
- {category.experience_years} years of relevant experience
- Technical proficiency: [Specify tools/software]
- EU work authorization required
- [Add 2-4 more specific requirements]

WHAT WE OFFER:
- Competitive salary: {salary_band_text(category)} per year
- {contract}
- Flexible working hours and hybrid work model ({details.hybrid})
- Professional development: €{details.training_budget} annual training budget
- {details.leave_days} days annual leave
- Health insurance and {details.bonus}
- Conference attendance and networking opportunities
- [Add 2-3 more specific benefits]

LOGISTICS & APPLICATION:
- Start date: {contract}
- Working languages: English and French/German
- Location: Brussels office with hybrid flexibility
- Application deadline: {application_deadline(today)}
- Interview process: Application screening → Competency interview → Case study → Final panel
- Decision within 2 weeks of final interview

ABOUT YOU:
- Strong analytical and communication skills
- Strategic mindset with ability to identify opportunities
- {details.personal_drive} and collaborative approach
- Deep knowledge of EU institutions and policy processes
- [Add 2-3 more personal qualities]

This is an exceptional opportunity to {details.opportunity} in Brussels' dynamic EU policy ecosystem.

{name} is an Equal Opportunity Employer committed to diversity and inclusion.

Please submit your application (CV, cover letter, and policy writing sample) by the deadline above.

Required JSON format:
{{
  "title": "Specific job title with {title_prefix}",
  "description": "Complete 2500-4000 word description following the structure above with org overview, mission, responsibilities, deliverables & KPIs, requirements, benefits, logistics, and about you sections"
}}"""


def render_fallback_job(
    entity: Entity,
    category: SeniorityCategory,
    title_prefix: str,
    *,
    today: date | None = None,
) -> GeneratedJob:
    details = posting_details(category)
    name = entity.display_name or "This organisation"
    level = category.name
    registration = entity.registration_category or DEFAULT_CATEGORY_LABEL
    about = entity.description or (
        f"{name} is a leading organization in the EU policy landscape, committed to excellence in "
        f"{entity.registration_category or 'public affairs'}."
    )
    focus = ", ".join(entity.interests[:3]) or "EU policy engagement"
    start = start_month(today)

    title = f"{title_prefix} - {registration} at {name}"
    description = f"""{name} is seeking a {level} level professional for an exciting opportunity in Brussels, Belgium.

ABOUT {name}:
{about}

YOUR MISSION:
As {title_prefix}, you will play a key role in our Brussels operations, contributing to {entity.goals or "our strategic objectives"} with focus on {focus}.

KEY RESPONSIBILITIES:
- Lead policy analysis and advocacy initiatives with measurable impact
- Monitor and report on EU legislative and regulatory developments
- Build and maintain relationships with key EU stakeholders
- Coordinate meetings, events, and stakeholder consultations
- Contribute to organizational strategy and business development
- Represent the organization in EU forums and working groups

DELIVERABLES & KPIs:
- Produce {details.deliverable}
- Achieve {details.satisfaction}+ stakeholder satisfaction ratings
- Maintain consistent engagement with {details.stakeholders} key stakeholders
- Complete deliverables with {details.accuracy}+ accuracy rate

REQUIREMENTS:
- {details.fallback_degree} in Political Science, European Studies, Law, or related field
- {category.experience_years} years of professional experience in EU policy or related field
- Fluent English (C1+) and preferably French or German (B2+)
- Strong analytical, communication, and organizational skills
- Proficiency in EU databases, CRM systems, and Microsoft Office
- EU work authorization required

WHAT WE OFFER:
- Competitive salary: {salary_band_text(category)} per year
- {details.contract} starting {start}
- Flexible working hours with hybrid work model
- Professional development budget and training opportunities
- {details.leave_days} days annual leave
- Health insurance and benefits package
- Conference attendance and networking opportunities

LOGISTICS:
- Location: Brussels, Belgium (hybrid: {details.hybrid})
- Working languages: English and French/German
- Start date: {start}
- Application deadline: {application_deadline(today)}

This is an excellent opportunity to {details.fallback_opportunity} in Brussels' vibrant EU policy ecosystem.

{name} is an Equal Opportunity Employer committed to diversity and inclusion.

Please submit your application (CV and cover letter) by the deadline above."""
    return GeneratedJob(title=title, description=description)

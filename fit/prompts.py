from __future__ import annotations  # Prompt construction for the diagnostic conversation

from textwrap import dedent
from typing import Dict, List, Sequence

from llm_gateway import Prompt

from .models import FitMessage, Session

OPERATOR_PROFILE = dedent(  # Background on the consultant being evaluated
    """
    CANDIDATE PROFILE: Calum Kershaw
    Title: AI Systems Developer & Process Analyst
    Location: Truro, Nova Scotia

    SUMMARY:
    Technology leader who translates business priorities into working systems. Combines hands-on AI
    development with operations experience to deliver tools that reduce manual work, improve information
    flow, and help teams make better decisions faster.

    TECHNICAL SKILLS:
    - AI & Automation: OpenAI API, Anthropic Claude, RAG Systems, Vector DBs, Embeddings, Agent Orchestration, MCP Servers, Make.com
    - Development: TypeScript, Python, React, Node.js, Express, PostgreSQL, SQLite, REST APIs
    - Data & Analytics: Power BI, SQL, ETL Pipelines, Data Profiling, Root Cause Analysis, Dashboard Design
    - Process & Delivery: Systems Thinking, Process Automation, Workflow Design, Stakeholder Management, Requirements Translation

    KEY EXPERIENCE:
    1. AI Solutions Developer (Independent Practice, 2025-Present)
       - Blackbird Brewing: end-to-end AI email automation, 17-category classifier with escalation rules, ~120 emails/week
       - JollyTails Resort: RAG-powered Q&A system consolidating 20+ fragmented SOPs with an admin analytics dashboard
       - MCP server for cross-tool project memory; multi-agent workflows for parallel delivery
    2. Operations Supervisor - Jolly Tails Pet Resort (2022, 2025-Present)
       - Improved operational KPIs by ~10% through data profiling and process optimization
    3. Data Analyst - St. Francis Xavier University, Advancement Office (2024-2025)
       - Power BI dashboards with rule-based quality checks; SQL extraction and reporting
    4. Student Manager - Kevin's Corner Food Bank, StFX (2023-2024)
       - Scaled operations to support 140+ additional users; workflows enabling 300% more operating hours

    EDUCATION:
    - Post-Bacc Diploma, Enterprise IT Management - St. Francis Xavier (2024)
    - BSc, Biology & Psychology - Dalhousie University (2022)

    STRENGTHS:
    - End-to-end delivery from requirements through deployment and handoff
    - Bridging technical implementation and operational strategy
    - Data quality focus and systematic root cause analysis

    AREAS OF GROWTH:
    - Enterprise-scale system architecture
    - Team leadership in technical roles
    """
).strip()

DIAGNOSTIC_PERSONA = dedent(
    """
    You are Calum Kershaw's diagnostic assistant. Hold a real conversation that finds the ONE biggest
    operational pain point and drills into its root cause.

    Persona:
    - Systems-thinking consultant who actually listens
    - Curious, not interrogating; grounded, professional, unhurried

    How to respond:
    - Every message is 1-2 sentences
    - Do not restate or paraphrase what the user just said; build on it
    - Use their own terminology naturally
    - Keep drilling into one thread; never ask checklist questions
    - Never use corporate jargon and never sell Calum directly
    - If the input is unusable, ask what takes up the most time or causes the most friction day to day
    """
).strip()

REPORT_PERSONA = dedent(
    """
    You are producing a FitReport from a diagnostic conversation in which a specific operational pain
    point was identified. Decide honestly whether Calum's background fits the need.

    Language rules:
    - Write everything in plain language a non-technical business owner would understand
    - No technical jargon in any user-facing field (no "RAG", "pipeline", "API", "webhook", "LLM")
    - Describe outcomes for the team, not technology
    """
).strip()

NO_FENCES = "Return only the JSON object. Do not wrap it in markdown code fences or add any text before or after it."

TURN_CONTRACT = 'Return a single JSON object with exactly these keys: {"message": "<your next message>", "readyForReport": <true|false>}'

EARLY_GUIDANCE = "Early in the conversation. Clarify the symptom and what the current process looks like. Do not conclude; readyForReport must be false."
MIDDLE_GUIDANCE = "Mid-conversation. Drill toward the root cause. If you can name it clearly, set readyForReport to true."
LATE_GUIDANCE = "Several exchanges done. You must conclude now: name the root pain point, ask at most one final clarifying question, and set readyForReport to true."

REPORT_SCHEMA = dedent(
    """
    {
      "verdict": "YES" or "NO" (YES when Calum's background fits the need that was identified),
      "heroRecommendation": "One bold sentence describing the outcome for the team",
      "approachSummary": "2-3 plain sentences describing the approach",
      "keyInsights": [
        {"label": "The Root Problem", "detail": "..."},
        {"label": "Where the Fix Lives", "detail": "..."},
        {"label": "First Win", "detail": "..."}
      ],
      "timeline": {
        "phase1": {"label": "First 30 Days", "action": "..."},
        "phase2": {"label": "Days 30-60", "action": "..."},
        "phase3": {"label": "Days 60-90", "action": "..."}
      },
      "scores": [{"label": "Time Freed Up", "current": 3, "projected": 7}],
      "fitSignals": ["2-8 reasons the fit holds"],
      "risks": ["2-8 risks or conditions that could derail the work"],
      "nextSteps": ["2-8 concrete next steps"]
    }
    """
).strip()


def clamp_text(text: str, limit: int) -> str:  # Character budget for user-supplied context
    text = (text or "").strip()
    if limit <= 0:
        return ""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip()


def turn_guidance(user_turns: int, *, narrowing_turns: int, max_turns: int) -> str:  # Behaviour band by turn count
    if user_turns <= narrowing_turns:
        return EARLY_GUIDANCE
    if user_turns < max_turns - 1:
        return MIDDLE_GUIDANCE
    return LATE_GUIDANCE


def transcript_messages(history: Sequence[FitMessage]) -> List[Dict[str, str]]:  # Replay transcript as chat turns
    return [{"role": turn.role, "content": turn.content} for turn in history if turn.content.strip()]


def transcript_text(history: Sequence[FitMessage]) -> str:  # Flattened transcript for single-shot prompts
    if not history:
        return "(no conversation)"
    return "\n".join(f"{turn.role.upper()}: {turn.content.strip()}" for turn in history)


def build_opening_prompt(context_text: str, *, limit: int) -> Prompt:
    context = clamp_text(context_text, limit)
    system = "\n\n".join([DIAGNOSTIC_PERSONA, "Background on Calum:\n" + OPERATOR_PROFILE])
    task = "\n".join(
        [
            "The user has shared this context (often a job description or a description of their business):",
            '"""',
            context,
            '"""',
            "",
            "Write the opening question. Acknowledge that you have seen their context and ask about their",
            "current operational challenges or what is taking up most of their energy. 1-2 sentences, warm but professional.",
            'Return a single JSON object: {"message": "<opening question>", "readyForReport": false}',
            NO_FENCES,
        ]
    )
    return Prompt(system=system, messages=[{"role": "user", "content": task}])


def build_turn_prompt(
    session: Session,
    *,
    limit: int,
    narrowing_turns: int,
    max_turns: int,
) -> Prompt:
    system = "\n\n".join([DIAGNOSTIC_PERSONA, "Background on Calum:\n" + OPERATOR_PROFILE])
    messages: List[Dict[str, str]] = []
    context = clamp_text(session.context_text, limit)
    if context:
        messages.append({"role": "user", "content": f'Context about my situation:\n"""\n{context}\n"""'})
        messages.append(
            {
                "role": "assistant",
                "content": '{"message": "Thanks for sharing that context. Let me ask you about it.", "readyForReport": false}',
            }
        )
    messages.extend(transcript_messages(session.transcript))
    instruction = "\n".join(
        [
            "[SYSTEM INSTRUCTION - NOT A USER MESSAGE]",
            turn_guidance(session.user_turns, narrowing_turns=narrowing_turns, max_turns=max_turns),
            f"User turn count: {session.user_turns}",
            "Generate your next message and follow the thread.",
            TURN_CONTRACT,
            NO_FENCES,
        ]
    )
    messages.append({"role": "user", "content": instruction})
    return Prompt(system=system, messages=messages)


def build_report_prompt(session: Session, *, limit: int) -> Prompt:
    system = "\n\n".join([REPORT_PERSONA, "Background on Calum:\n" + OPERATOR_PROFILE])
    context = clamp_text(session.context_text, limit)
    sections: List[str] = []
    if context:
        sections.append(f'Context:\n"""\n{context}\n"""')
    sections.append("Conversation:\n" + transcript_text(session.transcript))
    sections.append(
        "\n".join(
            [
                "Generate a FitReport focused on the ONE pain point identified.",
                "Ground every array item in something the user actually said in the conversation above;",
                "reuse their words for tools, volumes, and tasks. No generic filler.",
                "Each string array holds 2-8 items. Score 5-6 dimensions relevant to this conversation on a 0-10 scale",
                "with short labels (2-3 words).",
                "Return JSON matching this shape:",
                REPORT_SCHEMA,
                NO_FENCES,
            ]
        )
    )
    return Prompt(system=system, messages=[{"role": "user", "content": "\n\n".join(sections)}])


__all__ = [
    "DIAGNOSTIC_PERSONA",
    "EARLY_GUIDANCE",
    "LATE_GUIDANCE",
    "MIDDLE_GUIDANCE",
    "NO_FENCES",
    "OPERATOR_PROFILE",
    "REPORT_PERSONA",
    "build_opening_prompt",
    "build_report_prompt",
    "build_turn_prompt",
    "clamp_text",
    "transcript_messages",
    "transcript_text",
    "turn_guidance",
]

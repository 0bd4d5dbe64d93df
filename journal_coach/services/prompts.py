"""Prompt templates and static fallbacks for every text-generation call site"""

# ==========================================
# Static fallbacks (served whenever generation fails)
# ==========================================

FALLBACK_DAILY_QUESTIONS = [
    "What's one thing you learned today that you're proud of?",
    "How did you practice mindfulness or self-care today?",
    "What's your biggest win today, big or small?",
]

FALLBACK_CHALLENGE = "Try the Pomodoro technique: 25 minutes of focused work, then a 5-minute break."

FALLBACK_SUMMARY = "Unable to generate summary at this time."

FALLBACK_NARRATIVE = "Unable to generate weekly report at this time."

FALLBACK_CHAT_REPLY = "I'm having trouble connecting right now. Please try again."

MAX_DAILY_QUESTIONS = 3

# ==========================================
# Prompts
# ==========================================

DAILY_QUESTIONS_PROMPT = (
    "Generate 3 short, unique reflective questions for a student's daily journal "
    "focusing on mindfulness, learning, and productivity. "
    "Return only the questions, one per line."
)

DAILY_CHALLENGE_PROMPT = (
    "Generate one simple, actionable daily productivity challenge for students to "
    "improve focus and discipline. Keep it brief (one sentence) and inspiring."
)

JOURNAL_SUMMARY_PROMPT = (
    "Summarize and reflect on this journal entry in 2-3 sentences. "
    "Focus on key emotions, insights, and growth: \"{journal_text}\""
)

REPORT_NARRATIVE_PROMPT = """Analyze this student's journal and progress data to create a motivational summary report:

Journals: {entry_count} entries in the last {window_days} days
XP: {xp}
Current Streak: {streak} days

Key themes and emotions from journals:
{summaries}

Provide a brief, encouraging summary focusing on growth, patterns, and actionable insights (4-5 sentences)."""

MENTOR_SYSTEM_PROMPT = (
    "You are a motivational mentor helping students improve their journaling and "
    "productivity habits. Be encouraging, insightful, and concise."
)

# Chat history sent with each mentor reply is capped to the most recent turns
MAX_CHAT_HISTORY = 20


def build_report_prompt(
    entry_count: int,
    window_days: int,
    xp: int,
    streak: int,
    summaries: list[str],
) -> str:
    """Fixed-shape payload for the report narrative"""
    return REPORT_NARRATIVE_PROMPT.format(
        entry_count=entry_count,
        window_days=window_days,
        xp=xp,
        streak=streak,
        summaries="\n".join(s for s in summaries if s.strip()) or "(no entries)",
    )

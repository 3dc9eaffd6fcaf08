"""
Keyword vocabularies used by the heuristic parts of the engine.

These lists tune behavior (emotional intensity, reveal priority, guest text
cleanup, critical-error and step detection). Swapping them changes wording
sensitivity only; thresholds and ordering rules live with the code that
applies them.
"""

# Persona traits that raise emotional intensity
EXPRESSIVE_TRAITS = ("passionate", "intense", "emotional", "dramatic", "expressive")

# Facts containing these are surfaced first once intensity is high
EMOTIONAL_KEYWORDS = ("upset", "frustrated", "worried", "concerned", "angry")

# Arc stages that make a missing-empathy turn critical
NEGATIVE_EMOTIONS = ("frustrated", "angry", "upset", "worried", "distressed", "furious")

# Out-of-character phrases removed from guest replies
META_DENYLIST = (
    "as an ai",
    "i am programmed",
    "this is a simulation",
    "training scenario",
    "i'm designed to",
)

GUEST_FALLBACK_RESPONSES = (
    "I'm not sure I understand. Could you help me with this?",
    "Can you clarify what you mean?",
    "I need some assistance with my situation.",
    "This is important to me. Can we figure this out?",
)

EMOTION_VOCABULARY: dict[str, tuple[str, ...]] = {
    "frustrated": ("annoyed", "irritated", "upset", "bothered"),
    "angry": ("mad", "furious", "livid", "outraged"),
    "worried": ("concerned", "anxious", "nervous", "troubled"),
    "happy": ("pleased", "satisfied", "glad", "content"),
    "confused": ("unclear", "don't understand", "puzzled"),
}

# Critical-error label keyword -> (any-of phrases, all-of phrases)
CRITICAL_ERROR_PATTERNS: dict[str, tuple[tuple[str, ...], tuple[str, ...]]] = {
    "blaming": (("your fault", "you should have"), ()),
    "refusing to help": (("nothing we can do",), ()),
    "incorrect information": ((), ("probably", "third-party")),
}

# Step label keyword -> (trainee phrases, dimension, threshold)
STEP_COMPLETION_RULES: tuple[tuple[str, tuple[str, ...], str, int], ...] = (
    ("acknowledge", ("understand", "frustrat"), "empathy_index", 50),
    ("apologize", ("apologize", "sorry"), "empathy_index", 60),
    ("alternative", ("alternative", "option", "find you"), "completeness", 60),
    ("compensation", ("compensation", "refund", "credit"), "policy_adherence", 60),
    ("follow up", ("follow up", "check back", "ensure"), "completeness", 70),
)

# Words too common to signal a critical error or step on their own
GENERIC_STOPWORDS = frozenset({
    "about", "after", "being", "before", "customer", "customers", "from", "guest",
    "guests", "have", "help", "into", "just", "make", "than", "that", "their", "them",
    "then", "there", "they", "this", "what", "when", "will", "with", "your",
})

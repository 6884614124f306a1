"""Registry of the available encoding steps, keyed by step tag."""

from lencode.steps.base import EncodingStep
from lencode.steps.bayes import LencodeBayes
from lencode.steps.glm import LencodeGlm
from lencode.steps.mixed import LencodeMixed

STEP_REGISTRY: dict[str, type[EncodingStep]] = {
    LencodeGlm.tag: LencodeGlm,
    LencodeBayes.tag: LencodeBayes,
    LencodeMixed.tag: LencodeMixed,
}

# Short names accepted by the CLI
METHODS: dict[str, type[EncodingStep]] = {
    "glm": LencodeGlm,
    "bayes": LencodeBayes,
    "mixed": LencodeMixed,
}


def get_step_class(name: str) -> type[EncodingStep]:
    """Look a step class up by tag or short method name."""
    if name in STEP_REGISTRY:
        return STEP_REGISTRY[name]
    if name in METHODS:
        return METHODS[name]
    raise KeyError(f"Unknown encoding step: {name}. Choose from {sorted(METHODS)}")

from alph.targets.base import FileTarget, Target, degrade_to_empty, native_headers, split_headers
from alph.targets.claude import ClaudeTarget
from alph.targets.codex import CodexTarget
from alph.targets.cursor import CursorTarget
from alph.targets.gemini import GeminiTarget
from alph.targets.kiro import KiroTarget
from alph.targets.vscode import VSCodeTarget
from alph.targets.windsurf import WindsurfTarget

# Built-in targets in presentation order.
BUILTIN_TARGETS: dict[str, type[FileTarget]] = {
    "cursor": CursorTarget,
    "claude": ClaudeTarget,
    "gemini": GeminiTarget,
    "windsurf": WindsurfTarget,
    "kiro": KiroTarget,
    "vscode": VSCodeTarget,
    "codex": CodexTarget,
}

__all__ = [
    "BUILTIN_TARGETS",
    "ClaudeTarget",
    "CodexTarget",
    "CursorTarget",
    "FileTarget",
    "GeminiTarget",
    "KiroTarget",
    "Target",
    "VSCodeTarget",
    "WindsurfTarget",
    "degrade_to_empty",
    "native_headers",
    "split_headers",
]

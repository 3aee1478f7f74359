"""
Player script grammar: recovers the signature cipher from obfuscated JS.

The player script ships an object literal whose members are tiny helpers
(reverse / slice / splice / swap) and a decipher function that splits the
signature, calls those helpers in a fixed order and joins the result:

    var Xy={ab:function(a){a.reverse()},
    cd:function(a,b){var c=a[0];a[0]=a[b%a.length];a[b]=c}};
    function(a){a=a.split("");Xy.cd(a,3);Xy.ab(a,45);return a.join("")}

Member names are minified and change with every deployment, so helpers are
recognised by the shape of their body and the names are read back from the
match. Grammars are registered like scrapers so a new upstream variant can be
added as another recognizer without touching the cache or resolver.
"""
from __future__ import annotations
import logging
import re
from typing import Optional

from .base import CipherOperation, FormatError, OperationType, SignatureCipher

log = logging.getLogger("signet.cipher.grammar")

VARIABLE_PART = r"[a-zA-Z_$][a-zA-Z_0-9$]*"

REVERSE_PART = r":function\(a\)\{(?:return )?a\.reverse\(\)\}"
SLICE_PART = r":function\(a,b\)\{return a\.slice\(b\)\}"
SPLICE_PART = r":function\(a,b\)\{a\.splice\(0,b\)\}"
SWAP_PART = (
    r":function\(a,b\)\{"
    r"var c=a\[0\];a\[0\]=a\[b%a\.length\];a\[b\]=c(?:;return a)?\}"
)

FUNCTION_RE = re.compile(
    r"function(?: " + VARIABLE_PART + r")?\(a\)\{"
    r'a=a\.split\(""\);\s*'
    r"((?:(?:a=)?" + VARIABLE_PART + r"\." + VARIABLE_PART + r"\(a,\d+\);)+)"
    r'return a\.join\(""\)'
    r"\}"
)

ACTIONS_RE = re.compile(
    r"var (" + VARIABLE_PART + r")=\{((?:(?:"
    + VARIABLE_PART + REVERSE_PART + "|"
    + VARIABLE_PART + SLICE_PART + "|"
    + VARIABLE_PART + SPLICE_PART + "|"
    + VARIABLE_PART + SWAP_PART
    + r"),?\n?)+)\};"
)

_MEMBER_PREFIX = r"(?:^|,)(" + VARIABLE_PART + ")"

# Checked in this order; the first member matching a shape owns it
SHAPES: list[tuple[OperationType, re.Pattern]] = [
    (OperationType.REVERSE, re.compile(_MEMBER_PREFIX + REVERSE_PART, re.MULTILINE)),
    (OperationType.SLICE, re.compile(_MEMBER_PREFIX + SLICE_PART, re.MULTILINE)),
    (OperationType.SPLICE, re.compile(_MEMBER_PREFIX + SPLICE_PART, re.MULTILINE)),
    (OperationType.SWAP, re.compile(_MEMBER_PREFIX + SWAP_PART, re.MULTILINE)),
]


# ──────────────────────────────
#  Grammar registry
# ──────────────────────────────
class ScriptGrammar:
    id: str
    rank: int

    def extract(self, script: str) -> SignatureCipher:
        raise NotImplementedError


_GRAMMARS: list[ScriptGrammar] = []


def register_grammar(grammar):
    """Decorator to register a script grammar class."""
    global _GRAMMARS
    _GRAMMARS = [g for g in _GRAMMARS if g.id != grammar.id]
    _GRAMMARS.append(grammar())
    _GRAMMARS.sort(key=lambda g: g.rank, reverse=True)
    return grammar


def list_grammars() -> list[ScriptGrammar]:
    return list(_GRAMMARS)


def extract_cipher(script: str, grammars: Optional[list[ScriptGrammar]] = None) -> SignatureCipher:
    """Run grammars in rank order and return the first cipher recognised.

    Raises the last FormatError when no grammar understands the script.
    """
    candidates = _GRAMMARS if grammars is None else grammars
    error: Optional[FormatError] = None
    for grammar in candidates:
        try:
            return grammar.extract(script)
        except FormatError as e:
            log.debug("[%s] grammar did not match: %s", grammar.id, e)
            error = e
    if error is None:
        raise FormatError("No script grammar registered")
    raise error


# ──────────────────────────────
#  Action object grammar
# ──────────────────────────────
def _find_member_names(action_body: str) -> dict[str, OperationType]:
    """Map member name → operation type for every shape present in the body."""
    members: dict[str, OperationType] = {}
    for op_type, pattern in SHAPES:
        m = pattern.search(action_body)
        if m and m.group(1) not in members:
            members[m.group(1)] = op_type
    return members


@register_grammar
class ActionObjectGrammar(ScriptGrammar):
    id = "action-object"
    rank = 100

    def extract(self, script: str) -> SignatureCipher:
        actions = ACTIONS_RE.search(script)
        if not actions:
            raise FormatError("Must find action functions from script.")

        object_name, action_body = actions.group(1), actions.group(2)
        members = _find_member_names(action_body)
        log.debug("[%s] action object %s members %s", self.id, object_name,
                  {name: t.value for name, t in members.items()})

        function = FUNCTION_RE.search(script)
        if not function:
            raise FormatError("Must find decipher function from script.")

        # Calls to unknown members never match: only known names are alternated.
        # Names may contain "$", so they are escaped before going into the pattern
        call_re = re.compile(
            r"(?:a=)?" + re.escape(object_name) + r"\.("
            + "|".join(re.escape(name) for name in members)
            + r")\(a,(\d+)\)"
        )

        operations = []
        for m in call_re.finditer(function.group(1)):
            op_type = members[m.group(1)]
            parameter = 0 if op_type is OperationType.REVERSE else int(m.group(2))
            operations.append(CipherOperation(op_type, parameter))

        return SignatureCipher(tuple(operations))

"""Canonical ``Action + Object (+Time)`` form for accepted units."""

from __future__ import annotations

import logging
import re

from .config import ExtractionConfig
from .gate import CommitmentMatcher
from .timecues import find_time_cues
from .types import CanonicalForm, TimeCue
from .vocabulary import DEFAULT_VOCABULARY, Vocabulary

logger = logging.getLogger(__name__)

_PREPOSITION = re.compile(
    r"(?:\b(?:in|by|during|for|from|starting(?: in)?|beginning(?: in)?|until|through|"
    r"before|after|within|as of|no later than|over)\s+)?(?:the\s+)?$",
    re.I,
)
_CLAUSE_BREAK = re.compile(r"[,;:]|\s[-–—]\s|[.!?](?:\s|$)|\b(?:which|while|because|whereas|so that)\b", re.I)
_TITLE_CLAUSE = re.compile(r"\s(?:and|with|that|which|including|while|through|via|to)\s", re.I)
_PARENTHETICAL = re.compile(r"\s*\([^)]*\)")
_TOKEN = re.compile(r"[A-Za-z0-9][A-Za-z0-9&'-]*")
_TRAILING = {"and", "or", "the", "a", "an", "of", "to", "in", "by", "for", "with", "at", "on", "as"}


class Canonicalizer:
    """Maps unit text to a title, action verb, object key and time bucket."""

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        vocabulary: Vocabulary = DEFAULT_VOCABULARY,
    ) -> None:
        self.config = config or ExtractionConfig()
        self.vocabulary = vocabulary
        self.matcher = CommitmentMatcher(self.config, vocabulary)
        self._verbs = vocabulary.verb_index()
        forms = sorted(self._verbs, key=len, reverse=True)
        self._verb_re = re.compile(r"\b(?:" + "|".join(re.escape(f) for f in forms) + r")\b", re.I)
        self._prefix_res = tuple(re.compile("^" + p, re.I) for p in vocabulary.subject_prefixes)
        self._object_keys = tuple(
            (re.compile(rf"\b(?:{pattern})\b", re.I), key) for pattern, key in vocabulary.object_keys
        )

    # -- pieces -------------------------------------------------------------

    def strip_prefixes(self, text: str) -> str:
        """Remove lead-in clauses and subject+modal prefixes, repeatedly."""
        changed = True
        while changed:
            changed = False
            for pattern in self._prefix_res:
                m = pattern.match(text)
                if m and m.end() < len(text):
                    text = text[m.end():]
                    changed = True
        return text

    def find_verb(self, text: str) -> tuple[str, int, int] | None:
        """(canonical verb, start, end) of the action verb.

        A verb that opens the (prefix-stripped) text wins. Otherwise the search
        starts at the first commitment phrase that is not itself a verb form, so
        subject nouns that look like verbs ("the production ramp will begin")
        are skipped.
        """
        m = self._verb_re.search(text)
        if m and not text[: m.start()].strip():
            return self._verbs[m.group(0).lower()], m.start(), m.end()
        commitment = self.matcher.find(text)
        anchor, pos = commitment, 0
        while anchor and anchor.phrase in self._verbs:
            pos += anchor.end
            anchor = self.matcher.find(text[pos:])
        if anchor:
            after = self._verb_re.search(text, pos + anchor.start)
            if after:
                return self._verbs[after.group(0).lower()], after.start(), after.end()
        if m:
            return self._verbs[m.group(0).lower()], m.start(), m.end()
        if commitment:
            after = re.match(r"\s+(?:to\s+)?([a-z]+)", text[commitment.end:])
            if after:
                start = commitment.end + after.start(1)
                return after.group(1).lower(), start, start + len(after.group(1))
        return None

    def object_phrase(self, rest: str, cues: list[TimeCue], offset: int) -> str:
        """Object text after the verb, minus leading "to", time phrases and trailing clauses."""
        spans = sorted(
            (c.start - offset, c.end - offset) for c in cues if c.end > offset
        )
        pieces: list[str] = []
        pos = 0
        for start, end in spans:
            start = max(start, 0)
            head = rest[pos:start]
            m = _PREPOSITION.search(head)
            pieces.append(head[: m.start()] if m else head)
            pos = end
        pieces.append(rest[pos:])
        phrase = " ".join(p.strip() for p in pieces if p.strip())

        phrase = re.sub(r"^\s*to\s+", "", phrase, flags=re.I)
        cut = _CLAUSE_BREAK.search(phrase)
        if cut:
            phrase = phrase[: cut.start()]
        words = phrase.split()
        while words and words[-1].lower() in _TRAILING:
            words.pop()
        return " ".join(self._normalize_word(w) for w in words)

    def _normalize_word(self, word: str) -> str:
        lower = word.lower()
        if lower in self.vocabulary.acronyms:
            return word.upper()
        if lower in self.vocabulary.proper_nouns:
            return lower.capitalize()
        return word

    def object_key(self, phrase: str) -> str:
        for pattern, key in self._object_keys:
            if pattern.search(phrase):
                return key
        tokens = [t.lower() for t in _TOKEN.findall(phrase) if t.lower() not in self.vocabulary.stopwords]
        return "-".join(tokens[:2]) or "general"

    def compose_title(self, verb: str, phrase: str, cue: TimeCue | None) -> str:
        """``Verb object (cue)`` within the title limit; the verb always survives."""
        limit = self.config.max_title_chars
        head = verb.capitalize()
        suffix = f" ({cue.label})" if cue else ""

        def build(obj: str, sfx: str) -> str:
            return " ".join(p for p in (head, obj) if p) + sfx

        title = build(phrase, suffix)
        if len(title) <= limit:
            return title

        phrase = _PARENTHETICAL.sub("", phrase).strip()
        title = build(phrase, suffix)
        if len(title) <= limit:
            return title

        m = _TITLE_CLAUSE.search(phrase)
        if m:
            phrase = phrase[: m.start()].strip()
            title = build(phrase, suffix)
            if len(title) <= limit:
                return title

        room = limit - len(head) - 1 - len(suffix)
        if room < 10:
            suffix = ""
            room = limit - len(head) - 1
        cut = phrase[:room]
        if len(phrase) > room and " " in cut:
            cut = cut[: cut.rfind(" ")]
        return build(cut.rstrip(" ,;:-"), suffix)[:limit] if room > 0 else head[:limit]

    # -- entry point --------------------------------------------------------

    def canonicalize(self, text: str) -> CanonicalForm | None:
        """Canonical form for *text*, or None when no action verb can be found."""
        cues = find_time_cues(text)
        cue = cues[0] if cues else None

        body = self.strip_prefixes(text.strip())
        offset = len(text.strip()) - len(body) + (len(text) - len(text.lstrip()))

        found = self.find_verb(body)
        if found is None:
            logger.debug("no action verb: %r", text[:80])
            return None
        verb, _, verb_end = found

        phrase = self.object_phrase(body[verb_end:], cues, offset + verb_end)
        title = self.compose_title(verb, phrase, cue)
        return CanonicalForm(
            title=title,
            action_verb=verb,
            object_key=self.object_key(phrase),
            object_phrase=phrase,
            time_bucket=cue.bucket if cue else None,
            time_cue=cue,
        )

"""Keyword, verb and stop-word tables shared by the extraction stages.

All tables are immutable. Components receive a :class:`Vocabulary` at
construction (``DEFAULT_VOCABULARY`` unless a test supplies its own), so no
stage reads or mutates module state at call time.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

# Commitment phrases, matched case-insensitively on word boundaries.
# Strong: stated intent or an action already taken.
STRONG_COMMITMENTS: tuple[str, ...] = (
    "will", "shall", "are going to", "is going to",
    "committed to", "commit to", "commits to", "decided to", "has decided to",
    "approved", "authorized", "agreed to", "entered into",
    "launched", "began", "begun", "started", "commenced", "initiated",
    "completed", "signed", "acquired", "opened", "closed on", "divested",
    "announced", "selected", "chose to", "executed", "hired", "deployed",
    "ramp", "launch",
    "already underway", "is underway", "are underway",
)

# Weak: planned or targeted but not yet locked in.
WEAK_COMMITMENTS: tuple[str, ...] = (
    "plan to", "plans to", "planning to", "planned to",
    "intend to", "intends to", "intending to",
    "expect to", "expects to", "expected to",
    "aim to", "aims to", "seek to", "seeks to",
    "target", "targets", "targeting", "targeted",
    "on track to", "preparing to", "prepared to", "scheduled to", "set to",
    "looking to", "working to", "remain committed",
)

# Modal hedges. "May" followed by a day or year is the month, not a hedge.
HEDGES: tuple[str, ...] = ("may", "could", "might")

CAPITAL_CUES: tuple[str, ...] = (
    r"capex", r"capital expenditures?", r"capital", r"invest\w*", r"spend\w*",
    r"budget\w*", r"\$\s?\d", r"billion", r"million",
    r"factor(?:y|ies)", r"megafactor(?:y|ies)", r"gigafactor(?:y|ies)", r"plants?",
    r"facilit(?:y|ies)", r"capacity", r"production", r"manufactur\w*",
    r"headcount", r"hir(?:e|es|ed|ing)", r"workforce", r"pricing", r"prices?",
    r"ramp\w*", r"build\w*", r"construct\w*", r"equipment", r"expan\w+",
    r"acquisitions?", r"data cent(?:er|re)s?",
)

EXPOSURE_CUES: tuple[str, ...] = (
    r"guidance", r"outlook", r"forecast\w*", r"target\w*", r"will",
    r"plan(?:s|ned)?", r"expect\w*", r"announc\w+", r"publicly", r"commit\w*",
)

DEPENDENCY_CUES: tuple[str, ...] = (
    r"requires?", r"required", r"depend\w*", r"contingent(?: on| upon)?",
    r"subject to", r"pending", r"once", r"after", r"before", r"following",
    r"prerequisite", r"regulatory approval", r"approval",
)

REVERSAL_CUES: tuple[str, ...] = (
    r"completed", r"signed", r"already underway", r"underway", r"binding",
    r"contract(?:s|ed)?", r"long-term agreement", r"multi-year", r"lease[ds]?",
    r"acquired", r"divested", r"irreversibl\w*", r"broke ground", r"began construction",
    r"shut(?:ting)? down", r"closed", r"terminated", r"layoffs?",
)

# Financial-statement field names; alone they describe outcomes, not choices.
METRIC_TERMS: tuple[str, ...] = (
    r"revenues?", r"eps", r"earnings per share", r"gross margins?", r"operating margins?",
    r"operating income", r"net income", r"ebitda", r"free cash flow", r"cash flow",
    r"gaap", r"non-gaap", r"diluted", r"operating expenses", r"opex",
    r"cost of revenues?", r"gross profit", r"income tax", r"total assets",
    r"deliveries", r"year[- ]over[- ]year", r"yoy", r"sequentially",
)

BOILERPLATE_PATTERNS: tuple[str, ...] = (
    r"forward[- ]looking statements?",
    r"safe harbor",
    r"could cause actual results to differ",
    r"actual results may differ",
    r"undertakes? no obligation",
    r"webcast",
    r"conference call",
    r"copyright",
    r"all rights reserved",
    r"investor relations",
    r"for more information",
    r"this (?:presentation|document|letter) (?:contains|includes)",
)

# Subject/lead-in prefixes removed before the action verb is located.
SUBJECT_PREFIXES: tuple[str, ...] = (
    r"(?:in|during|by|for|starting in|beginning in)\s+[^,]{2,40},\s*",
    r"(?:as|as previously) (?:announced|planned|discussed)(?: [^,]{0,40})?,\s*",
    r"(?:additionally|also|further(?:more)?|moreover|meanwhile|separately|finally|overall),?\s+",
    r"(?:the company|the board(?: of directors)?|management|the team|our team|we|tesla|it)"
    r"(?:\s+(?:also|now|currently|still))?\s+"
    r"(?:will|shall|plans? to|expects? to|intends? to|aims? to|is planning to|are planning to"
    r"|remains? on track to|(?:is|are) on track to|(?:has|have) decided to|(?:is|are) expected to"
    r"|(?:is|are) preparing to|(?:is|are) set to|(?:has|have) begun to|continues? to|(?:has|have))\s+",
)

# Canonical action verbs. Inflections are derived; irregular forms are listed below.
ACTION_VERBS: tuple[str, ...] = (
    "launch", "begin", "expand", "build", "open", "close", "acquire", "divest",
    "invest", "hire", "reduce", "cut", "increase", "raise", "lower", "ramp",
    "deploy", "introduce", "release", "ship", "deliver", "complete", "sign",
    "enter", "exit", "discontinue", "restructure", "consolidate", "relocate",
    "repurchase", "pay", "issue", "approve", "adopt", "implement", "migrate",
    "upgrade", "replace", "transition", "partner", "retire", "merge",
    "establish", "develop", "produce", "manufacture", "construct", "pursue",
    "prioritize", "allocate", "fund", "reorganize", "shift", "double",
    "accelerate", "pause", "delay", "resume", "extend", "renew", "terminate",
    "sell", "license", "outsource", "automate", "add", "convert", "standardize",
    "centralize", "localize", "offer", "unify", "spend",
)

IRREGULAR_FORMS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "begin": ("began", "begun", "beginning"),
    "build": ("built",),
    "sell": ("sold",),
    "pay": ("paid",),
    "cut": ("cut",),
    "buy": ("bought",),
    "set": ("set",),
    "spend": ("spent",),
    "lay": ("laid",),
    "spin": ("spun",),
    "wind": ("wound",),
    "stand": ("stood",),
    "shut": ("shut",),
})

# Final consonant doubles before -ed/-ing.
DOUBLED_FINALS: frozenset[str] = frozenset({
    "ship", "cut", "set", "shut", "spin", "drop", "stop", "scrap", "plan",
})

# Phrase -> canonical action verb. Keys are base forms; inflections are derived.
VERB_SYNONYMS: Mapping[str, str] = MappingProxyType({
    "roll out": "launch",
    "unveil": "launch",
    "debut": "launch",
    "scale up": "ramp",
    "ramp up": "ramp",
    "commence": "begin",
    "start": "begin",
    "initiate": "begin",
    "kick off": "begin",
    "shut down": "close",
    "wind down": "discontinue",
    "phase out": "discontinue",
    "buy back": "repurchase",
    "buy": "acquire",
    "purchase": "acquire",
    "spin off": "divest",
    "lay off": "cut",
    "slash": "cut",
    "trim": "reduce",
    "boost": "increase",
    "hike": "raise",
    "set up": "establish",
    "stand up": "establish",
    "build out": "build",
    "broaden": "expand",
    "enlarge": "expand",
    "grow": "expand",
    "move": "shift",
    "finish": "complete",
})

# Ordered (pattern, key) pairs; first match in the object phrase wins.
OBJECT_KEYS: tuple[tuple[str, str], ...] = (
    (r"megafactor(?:y|ies)|megapacks?", "megafactory"),
    (r"gigafactor(?:y|ies)|factor(?:y|ies)|plants?|manufacturing facilit(?:y|ies)", "factory"),
    (r"robotaxis?|ride[- ]hailing|cybercab", "robotaxi"),
    (r"autonomy|autonomous|self[- ]driving|fsd|full self[- ]driving", "autonomy"),
    (r"energy storage|storage deployments?|powerwalls?", "energy-storage"),
    (r"batter(?:y|ies)|cells?|cathode|lithium", "battery"),
    (r"optimus|humanoid|robots?", "robotics"),
    (r"data cent(?:er|re)s?|compute|gpus?|training cluster", "compute"),
    (r"supercharg\w*|charging", "charging"),
    (r"headcount|workforce|employees|staff|hiring|jobs", "workforce"),
    (r"dividends?", "dividend"),
    (r"buybacks?|repurchases?|share repurchase|shares", "share-repurchase"),
    (r"pric(?:e|es|ing)", "pricing"),
    (r"capex|capital expenditures?", "capex"),
    (r"debt|notes|credit facility|bonds?", "debt"),
    (r"platforms?|vehicles?|models?|cybertruck|semi", "product"),
    (r"software|app|subscriptions?", "software"),
    (r"market|markets|countr(?:y|ies)|regions?", "market"),
    (r"suppl(?:y|ier|iers)|sourcing", "supply-chain"),
)

STOPWORDS: frozenset[str] = frozenset({
    "the", "a", "an", "is", "are", "was", "were", "be", "been", "being",
    "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "can", "shall", "to", "of", "in", "for", "on",
    "with", "at", "by", "from", "and", "or", "but", "not", "so", "if", "than",
    "as", "into", "over", "its", "our", "their", "this", "that", "these",
    "those", "we", "it", "they", "new", "all", "also", "more", "further",
    "additional", "such", "which", "who", "per", "up", "out", "about",
})

ACRONYMS: frozenset[str] = frozenset({
    "ai", "ev", "evs", "fsd", "hr", "erp", "crm", "saas", "api", "r&d",
    "ceo", "cfo", "esg", "eu", "uk", "usa", "lfp", "gpu", "gpus",
})

PROPER_NOUNS: frozenset[str] = frozenset({
    "megafactory", "gigafactory", "megapack", "powerwall", "cybertruck",
    "cybercab", "robotaxi", "optimus", "supercharger", "shanghai", "berlin",
    "texas", "nevada", "mexico", "china", "europe", "india", "lathrop",
})

# (category, pattern) in priority order; first match wins.
CATEGORY_RULES: tuple[tuple[str, str], ...] = (
    ("Hiring", r"\b(hir\w*|headcount|recruit\w*|talent|workforce|layoffs?|staff\w*)\b"),
    ("Legal", r"\b(legal|regulat\w*|complian\w*|litigation|lawsuit|settle\w*|permit\w*|licens\w*)\b"),
    ("Finance", r"\b(capex|capital|dividend\w*|buyback\w*|repurchas\w*|debt|financ\w*|cash|margin\w*|cost\w*|budget\w*|invest\w*|fund\w*)\b"),
    ("Sales/Go-to-market", r"\b(sales|pricing|prices?|customers?|go-to-market|marketing|channel\w*|distribution|orders?|demand)\b"),
    ("Product", r"\b(products?|launch\w*|features?|platform|models?|vehicles?|software|release\w*|design\w*|robotaxi|roadmap)\b"),
    ("Operations", r"\b(production|factor(?:y|ies)|megafactory|gigafactory|plants?|capacity|manufactur\w*|supply|logistics|operations?|ramp\w*|deliver\w*)\b"),
    ("Strategy", r"\b(strateg\w*|acqui\w*|partner\w*|expan\w*|enter\w*|exit\w*|divest\w*|merg\w*|market\w*|priorit\w*)\b"),
)

CATEGORY_ALIASES: Mapping[str, str] = MappingProxyType({
    "ops": "Operations",
    "operation": "Operations",
    "operational": "Operations",
    "financial": "Finance",
    "fin": "Finance",
    "products": "Product",
    "r&d": "Product",
    "engineering": "Product",
    "hr": "Hiring",
    "people": "Hiring",
    "talent": "Hiring",
    "regulatory": "Legal",
    "compliance": "Legal",
    "strategic": "Strategy",
    "sales": "Sales/Go-to-market",
    "gtm": "Sales/Go-to-market",
    "go-to-market": "Sales/Go-to-market",
    "marketing": "Sales/Go-to-market",
    "sales/gtm": "Sales/Go-to-market",
})

CATEGORIES: tuple[str, ...] = (
    "Operations", "Finance", "Product", "Hiring", "Legal", "Strategy",
    "Sales/Go-to-market", "Other",
)

# (tag, pattern) pairs; all matches apply.
TAG_RULES: tuple[tuple[str, str], ...] = (
    ("capacity", r"\b(capacity|ramp\w*|production|volume)\b"),
    ("capex", r"\b(capex|capital expenditure\w*|invest\w*)\b"),
    ("launch", r"\b(launch\w*|introduc\w*|unveil\w*|roll(?:ed|ing)? out)\b"),
    ("pricing", r"\b(pric\w*)\b"),
    ("hiring", r"\b(hir\w*|headcount|workforce)\b"),
    ("cost", r"\b(cost\w*|efficien\w*|reduc\w*)\b"),
    ("expansion", r"\b(expan\w*|new markets?|enter\w*)\b"),
    ("partnership", r"\b(partner\w*|joint venture|agreement)\b"),
    ("capital-return", r"\b(dividend\w*|buyback\w*|repurchas\w*)\b"),
    ("ai", r"\b(ai|autonomy|autonomous|fsd|robotaxi|neural|training)\b"),
)

SECTION_PATTERNS: tuple[str, ...] = (
    r"highlights?", r"outlook", r"business outlook", r"guidance",
    r"letter to (?:our )?(?:shareholders|stockholders)",
    r"management'?s discussion(?: and analysis)?", r"md&a",
    r"key developments", r"strategic priorities", r"operational summary",
    r"financial summary", r"core technology", r"vehicle capacity",
    r"energy generation(?: and storage)?", r"capital allocation",
    r"forward[- ]looking statements", r"risk factors",
    r"(?:consolidated )?(?:financial statements|balance sheets?|statements? of (?:operations|cash flows|income))",
    r"reconciliation of [\w\s-]+", r"non-gaap[\w\s-]*", r"notes to [\w\s]+",
    r"appendix", r"glossary", r"webcast information", r"about [A-Z][\w.&]+",
)

LOW_SIGNAL_SECTIONS: tuple[str, ...] = (
    r"forward[- ]looking", r"safe harbor", r"risk factors",
    r"financial statements", r"balance sheet", r"statements? of", r"cash flows",
    r"reconciliation", r"non-gaap", r"notes to", r"appendix", r"glossary",
    r"webcast", r"^about ",
)


@dataclass(frozen=True)
class Vocabulary:
    strong_commitments: tuple[str, ...] = STRONG_COMMITMENTS
    weak_commitments: tuple[str, ...] = WEAK_COMMITMENTS
    hedges: tuple[str, ...] = HEDGES
    capital_cues: tuple[str, ...] = CAPITAL_CUES
    exposure_cues: tuple[str, ...] = EXPOSURE_CUES
    dependency_cues: tuple[str, ...] = DEPENDENCY_CUES
    reversal_cues: tuple[str, ...] = REVERSAL_CUES
    metric_terms: tuple[str, ...] = METRIC_TERMS
    boilerplate: tuple[str, ...] = BOILERPLATE_PATTERNS
    subject_prefixes: tuple[str, ...] = SUBJECT_PREFIXES
    action_verbs: tuple[str, ...] = ACTION_VERBS
    irregular_forms: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: IRREGULAR_FORMS)
    doubled_finals: frozenset[str] = DOUBLED_FINALS
    verb_synonyms: Mapping[str, str] = field(default_factory=lambda: VERB_SYNONYMS)
    object_keys: tuple[tuple[str, str], ...] = OBJECT_KEYS
    stopwords: frozenset[str] = STOPWORDS
    acronyms: frozenset[str] = ACRONYMS
    proper_nouns: frozenset[str] = PROPER_NOUNS
    category_rules: tuple[tuple[str, str], ...] = CATEGORY_RULES
    category_aliases: Mapping[str, str] = field(default_factory=lambda: CATEGORY_ALIASES)
    tag_rules: tuple[tuple[str, str], ...] = TAG_RULES
    section_patterns: tuple[str, ...] = SECTION_PATTERNS
    low_signal_sections: tuple[str, ...] = LOW_SIGNAL_SECTIONS

    def verb_forms(self, verb: str) -> set[str]:
        """Surface forms of a (possibly phrasal) base verb.

        >>> sorted(DEFAULT_VOCABULARY.verb_forms("roll out"))
        ['roll out', 'rolled out', 'rolling out', 'rolls out']
        """
        head, _, particle = verb.partition(" ")
        forms = {head, *self.irregular_forms.get(head, ())}

        if head.endswith(("s", "sh", "ch", "x", "z")):
            forms.add(head + "es")
        elif head.endswith("y") and head[-2:-1] not in "aeiou":
            forms.add(head[:-1] + "ies")
        else:
            forms.add(head + "s")

        if head.endswith("e"):
            forms.update((head + "d", head[:-1] + "ing"))
        elif head.endswith("y") and head[-2:-1] not in "aeiou":
            forms.update((head[:-1] + "ied", head + "ing"))
        elif head in self.doubled_finals:
            forms.update((head + head[-1] + "ed", head + head[-1] + "ing"))
        else:
            forms.update((head + "ed", head + "ing"))

        return {f"{form} {particle}".strip() for form in forms}

    def verb_index(self) -> dict[str, str]:
        """Map every surface form of every action verb and synonym to its canonical verb."""
        index: dict[str, str] = {}
        for verb in self.action_verbs:
            for form in self.verb_forms(verb):
                index.setdefault(form, verb)
        for phrase, canonical in self.verb_synonyms.items():
            for form in self.verb_forms(phrase):
                index.setdefault(form, canonical)
        return index


DEFAULT_VOCABULARY = Vocabulary()

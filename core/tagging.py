# core/tagging.py
import re
from typing import List, NamedTuple, Optional, Pattern


class TagRule(NamedTuple):
    pattern: Pattern[str]
    tag: str


# Checked in order against the lower-cased "title summary" text. Patterns match
# anywhere in a word, so "kingdom" counts for History and "kidnap" for Kids.
TAG_RULES: List[TagRule] = [
    TagRule(re.compile(r'war|battle|soldier|army|king|empire'), 'History'),
    TagRule(re.compile(r'magic|wizard|witch|dragon|spell'), 'Fantasy'),
    TagRule(re.compile(r'space|alien|galaxy|future|robot'), 'Sci-Fi'),
    TagRule(re.compile(r'love|romantic|marriage|heart'), 'Romance'),
    TagRule(re.compile(r'kill|murder|crime|detective|mystery'), 'Thriller'),
    TagRule(re.compile(r'children|kid|young|boy|girl'), 'Kids'),
    TagRule(re.compile(r'india|bharat|desi|indian'), 'India'),
    TagRule(re.compile(r'money|invest|rich|wealth|market'), 'Finance'),
    TagRule(re.compile(r'cook|food|recipe|kitchen'), 'Lifestyle'),
]


def generate_auto_tags(title: Optional[str], summary: Optional[str] = '') -> List[str]:
    """Derive coarse category tags from a book's title and summary.

    Each tag appears at most once, in rule order.
    """
    content = f"{title or ''} {summary or ''}".lower()
    tags: List[str] = []
    for rule in TAG_RULES:
        if rule.tag not in tags and rule.pattern.search(content):
            tags.append(rule.tag)
    return tags


def merge_tags(existing: List[str], extra: List[str]) -> List[str]:
    """Append tags from `extra` that are not already present"""
    merged = list(existing)
    for tag in extra:
        if tag not in merged:
            merged.append(tag)
    return merged

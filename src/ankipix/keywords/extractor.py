"""
Keyword Extractor

Pulls a short ordered list of image search terms out of a snippet of note
text using regex heuristics. There is no language model involved: list
items, definitions and questions are recognised by their shape and the
interesting words are picked by stop-word filtering and suffix rules.
"""
from __future__ import annotations

import re
from typing import Iterable, List

MAX_KEYWORDS = 5
MAX_SIMPLE_KEYWORDS = 3

STOP_WORDS = frozenset({
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for',
    'of', 'with', 'by', 'is', 'are', 'was', 'were', 'be', 'been', 'being',
    'have', 'has', 'had', 'do', 'does', 'did', 'will', 'would', 'could',
    'should', 'may', 'might', 'can', 'this', 'that', 'these', 'those',
    'i', 'you', 'he', 'she', 'it', 'we', 'they', 'me', 'him', 'her', 'us', 'them',
})

_NOUN_ENDINGS = ('tion', 'sion', 'ment', 'ness', 'ity', 'er', 'or', 'ist')
_ADJECTIVE_ENDINGS = ('ful', 'less', 'ous', 'ive', 'able', 'ible', 'ant', 'ent')
_SCIENTIFIC_WORD = re.compile(r'^[a-z]+ology$|^[a-z]+ism$|^[a-z]+gen$', re.IGNORECASE)
_COMPLEX_TERM = re.compile(
    r'\b[a-z]+ (?:acid|cell|system|theory|process|method|syndrome|disease)\b',
    re.IGNORECASE,
)

_LIST_MARKER = re.compile(r'^[-*+]\s+')
_QUESTION_WORD = re.compile(r'^(what|how|why|when|where|which)\s+', re.IGNORECASE)
_NON_WORD = re.compile(r'[^\w\s]')
_DASH_OR_SPACE = re.compile(r'[-\s]')
_WHITESPACE = re.compile(r'\s+')


def _unique(items: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(items))


def normalize_item(text: str) -> str:
    """Collapse whitespace in a source item.

    Text made only of whitespace and dashes (an empty bullet) normalizes to
    an empty string, which callers treat as "nothing to search for".
    """
    if not text or not _DASH_OR_SPACE.sub('', text):
        return ''
    return _WHITESPACE.sub(' ', text).strip()


def tokenize(text: str) -> List[str]:
    cleaned = _NON_WORD.sub(' ', text.lower())
    return [word for word in cleaned.split() if len(word) > 1]


def filter_important_words(words: Iterable[str]) -> List[str]:
    return [
        word for word in words
        if word not in STOP_WORDS and len(word) > 2 and not word.isdigit()
    ]


def is_likely_noun(word: str) -> bool:
    # Longer words are more likely to be meaningful nouns
    return word.endswith(_NOUN_ENDINGS) or bool(_SCIENTIFIC_WORD.match(word)) or len(word) > 4


def is_likely_adjective(word: str) -> bool:
    return word.endswith(_ADJECTIVE_ENDINGS)


def is_likely_complex_term(phrase: str) -> bool:
    return bool(_COMPLEX_TERM.search(phrase))


class KeywordExtractor:
    """Rule-based search term extractor.

    The extractor holds no per-call state, so one instance can serve any
    number of workflow items.
    """

    def extract_keywords(self, text: str) -> List[str]:
        if not text or not text.strip():
            return []

        clean_text = text.strip()
        if self._is_list_item(clean_text):
            keywords = self._extract_from_list_item(clean_text)
        elif self._is_definition(clean_text):
            keywords = self._extract_from_definition(clean_text)
        elif self._is_question(clean_text):
            keywords = self._extract_from_question(clean_text)
        else:
            keywords = self._extract_simple_keywords(clean_text)

        return [keyword for keyword in _unique(keywords) if len(keyword) > 2][:MAX_KEYWORDS]

    @staticmethod
    def _is_list_item(text: str) -> bool:
        return bool(re.match(r'^[-*+]\s', text))

    @staticmethod
    def _is_definition(text: str) -> bool:
        return ':' in text or ' is ' in text or ' are ' in text

    @staticmethod
    def _is_question(text: str) -> bool:
        lowered = text.lower()
        return '?' in text or lowered.startswith(('what', 'how', 'why'))

    def _extract_from_list_item(self, text: str) -> List[str]:
        return self._extract_simple_keywords(_LIST_MARKER.sub('', text).strip())

    def _extract_from_definition(self, text: str) -> List[str]:
        if ':' in text:
            term, definition = text.split(':')[:2]
            # The part before ':' is usually the term being defined
            return self.extract_noun_phrases(term.strip()) + self.extract_noun_phrases(definition.strip())[:2]
        for marker in (' is ', ' are '):
            if marker in text:
                return self.extract_noun_phrases(text.split(marker)[0].strip())
        return []

    def _extract_from_question(self, text: str) -> List[str]:
        cleaned = _QUESTION_WORD.sub('', text).replace('?', '').strip()
        return self.extract_noun_phrases(cleaned)

    def _extract_simple_keywords(self, text: str) -> List[str]:
        important = filter_important_words(tokenize(text))
        return _unique(self.extract_noun_phrases(text) + important)[:MAX_SIMPLE_KEYWORDS]

    def extract_noun_phrases(self, text: str) -> List[str]:
        words = tokenize(text)
        phrases = filter_important_words(words)

        # adjective/noun + noun pairs
        for current, following in zip(words, words[1:]):
            if is_likely_noun(following) and (is_likely_adjective(current) or is_likely_noun(current)):
                phrases.append(f"{current} {following}")

        for first, second, third in zip(words, words[1:], words[2:]):
            phrase = f"{first} {second} {third}"
            if is_likely_complex_term(phrase):
                phrases.append(phrase)

        return [phrase for phrase in phrases if len(phrase) > 2]

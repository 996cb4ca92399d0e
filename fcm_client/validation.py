# fcm_client/validation.py
"""Local checks on recipient selectors.

Topic names follow the FCM character set. Conditions follow the FCM
condition grammar:

    condition := unary (("&&" | "||") unary)*
    unary     := "!" unary | primary
    primary   := "'" TOPIC "'" "in" "topics" | "(" condition ")"

with at most two levels of parentheses and at most five topics.
"""
import re
from typing import List, Tuple

from .errors import InvalidCondition, InvalidTopicName

TOPIC_REGEX = re.compile(r"[a-zA-Z0-9\-_.~%]+")
MAX_CONDITION_DEPTH = 2
MAX_CONDITION_TOPICS = 5

_TOKEN_REGEX = re.compile(
    r"\s*(?:(?P<topic>'[^']*')|(?P<op>&&|\|\|)|(?P<punct>[()!])|(?P<word>[A-Za-z]+))"
)


def is_valid_topic(topic) -> bool:
    return isinstance(topic, str) and TOPIC_REGEX.fullmatch(topic) is not None


def validate_topic(topic) -> str:
    if not is_valid_topic(topic):
        raise InvalidTopicName(f"invalid topic name: {topic!r}")
    return topic


def _tokenize(condition: str) -> List[Tuple[str, str]]:
    tokens = []
    pos = 0
    end = len(condition.rstrip())
    while pos < end:
        m = _TOKEN_REGEX.match(condition, pos)
        if m is None:
            raise InvalidCondition(f"unexpected character at offset {pos} in condition {condition!r}")
        kind = m.lastgroup
        text = m.group(kind)
        if kind == "punct":
            kind = text
        elif kind == "topic":
            text = text[1:-1]
        tokens.append((kind, text))
        pos = m.end()
    return tokens


class _ConditionParser:
    def __init__(self, condition: str):
        self.condition = condition
        self.tokens = _tokenize(condition)
        self.pos = 0
        self.topics = 0

    def fail(self, reason: str):
        raise InvalidCondition(f"{reason} in condition {self.condition!r}")

    def peek(self):
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None, None

    def next(self):
        tok = self.peek()
        self.pos += 1
        return tok

    def expect_word(self, word: str):
        kind, text = self.next()
        if kind != "word" or text != word:
            self.fail(f"expected '{word}'")

    def parse(self):
        self.condition_expr(0)
        if self.pos != len(self.tokens):
            self.fail(f"unexpected {self.tokens[self.pos][1]!r}")

    def condition_expr(self, depth: int):
        self.unary(depth)
        while self.peek()[0] == "op":
            self.next()
            self.unary(depth)

    def unary(self, depth: int):
        if self.peek()[0] == "!":
            self.next()
            self.unary(depth)
        else:
            self.primary(depth)

    def primary(self, depth: int):
        kind, text = self.next()
        if kind == "topic":
            if not is_valid_topic(text):
                self.fail(f"invalid topic name {text!r}")
            self.expect_word("in")
            self.expect_word("topics")
            self.topics += 1
            if self.topics > MAX_CONDITION_TOPICS:
                self.fail(f"more than {MAX_CONDITION_TOPICS} topics")
        elif kind == "(":
            if depth >= MAX_CONDITION_DEPTH:
                self.fail(f"more than {MAX_CONDITION_DEPTH} levels of parentheses")
            self.condition_expr(depth + 1)
            if self.next()[0] != ")":
                self.fail("missing ')'")
        elif kind is None:
            self.fail("unexpected end")
        else:
            self.fail(f"unexpected {text!r}")


def validate_condition(condition) -> str:
    if not isinstance(condition, str) or not condition.strip():
        raise InvalidCondition(f"invalid condition: {condition!r}")
    _ConditionParser(condition).parse()
    return condition


def is_valid_condition(condition) -> bool:
    try:
        validate_condition(condition)
    except InvalidCondition:
        return False
    return True

"""Relevance search over customers and orders.

Scores are tiered; the first tier a candidate reaches is its score:

    10  exact id
     9  id contains the query
     8  exact email (customers) / order date starts with the query (orders)
     7  email contains the query (customers)
     6  a query token prefixes a name token or is > 0.8 similar to one
   ≤ 5  mean best-token similarity across the query, scaled to 5

Only candidates scoring above ``RELEVANCE_THRESHOLD`` are returned. The
sort is stable so equal scores keep their input order. This module knows
nothing about order classification; callers compose the two.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime

from operations.search.similarity import similarity, tokenize

RELEVANCE_THRESHOLD = 2.0
NAME_MATCH_SIMILARITY = 0.8
AGGREGATE_WEIGHT = 5.0


def _field(record, name: str):
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _customer_of(order):
    """The populated customer of an order record, if any."""
    return _field(order, "customer")


def _full_name(person) -> str:
    if person is None:
        return ""
    first = _field(person, "first_name") or ""
    last = _field(person, "last_name") or ""
    return f"{first} {last}".strip().lower()


def _id_score(record_id, query: str) -> float:
    record_id = str(record_id or "").lower()
    if not record_id:
        return 0.0
    if record_id == query:
        return 10.0
    if query in record_id:
        return 9.0
    return 0.0


def name_score(full_name: str, query: str) -> float:
    """Score a lower-cased full name against the query (tiers 6 and below)."""
    query_tokens = tokenize(query)
    name_tokens = tokenize(full_name)
    if not query_tokens or not name_tokens:
        return 0.0

    for query_token in query_tokens:
        for name_token in name_tokens:
            if name_token.startswith(query_token) or similarity(query_token, name_token) > NAME_MATCH_SIMILARITY:
                return 6.0

    total = 0.0
    for query_token in query_tokens:
        total += max(similarity(query_token, name_token) for name_token in name_tokens)
    return total / len(query_tokens) * AGGREGATE_WEIGHT


def score_customer(customer, query: str) -> float:
    query = (query or "").strip().lower()
    if not query:
        return 0.0

    score = _id_score(_field(customer, "id"), query)
    if score:
        return score

    email = (_field(customer, "email") or "").lower()
    if email and email == query:
        return 8.0
    if email and query in email:
        return 7.0

    return name_score(_full_name(customer), query)


def _date_forms(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return [
        f"{value.month}/{value.day}/{value.year}",
        value.strftime("%m/%d/%Y"),
        value.strftime("%Y-%m-%d"),
    ]


def score_order(order, query: str) -> float:
    query = (query or "").strip().lower()
    if not query:
        return 0.0

    score = _id_score(_field(order, "id"), query)
    if score:
        return score

    if any(form.startswith(query) for form in _date_forms(_field(order, "order_date"))):
        return 8.0

    return name_score(_full_name(_customer_of(order)), query)


def _rank(records: Iterable, query: str, scorer) -> list:
    records = list(records)
    if not (query or "").strip():
        return records

    scored = [(scorer(record, query), record) for record in records]
    kept = [(score, record) for score, record in scored if score > RELEVANCE_THRESHOLD]
    kept.sort(key=lambda pair: pair[0], reverse=True)
    return [record for _, record in kept]


def search_customers(customers: Iterable, query: str) -> list:
    return _rank(customers, query, score_customer)


def search_orders(orders: Iterable, query: str) -> list:
    """Orders must carry a populated ``customer`` to match by name."""
    return _rank(orders, query, score_order)

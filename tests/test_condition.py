"""
Tests for StubTap Conditions

Tests request predicates including:
- Custom and constant conditions
- Conjunction with pre-action accumulation
- Disjunction and negation
- Method, URI, query parameter, header and body conditions
"""

import pytest

from src.stubtap.semantics.action import header as header_action
from src.stubtap.semantics.call import Call
from src.stubtap.semantics.condition import (
    Condition,
    as_condition,
    delete,
    ends_with_uri,
    get,
    head,
    matches_json_body,
    matches_uri,
    method,
    options,
    parameter,
    patch,
    post,
    put,
    starts_with_uri,
    uri,
    uri_pattern,
    with_header,
    with_header_matching,
    with_post_body,
    with_post_body_containing,
    with_post_body_containing_json
)


@pytest.fixture
def get_user():
    return Call.from_request(
        'GET',
        'https://api.example.com/users/123?fields=name&fields=email&debug=',
        headers={'Authorization': 'Bearer token123', 'Accept': 'application/json'}
    )


@pytest.fixture
def post_user():
    return Call.from_request(
        'POST',
        'https://api.example.com/users',
        headers={'Content-Type': 'application/json'},
        body=b'{"name": "Jane Smith", "email": "jane@example.com", "age": 30}'
    )


class TestConditionCore:
    """Test Condition construction and composition."""

    def test_custom(self, get_user):
        """Test wrapping an arbitrary predicate."""
        condition = Condition.custom(lambda call: call.method == 'GET')

        assert condition.matches(get_user) is True
        assert condition(get_user) is True

    def test_always_true_and_false(self, get_user):
        """Test constant conditions."""
        assert Condition.always_true().matches(get_user) is True
        assert Condition.always_false().matches(get_user) is False

    def test_plain_condition_has_no_pre_actions(self):
        """Test conditions carry an empty pre-action list by default."""
        assert Condition.always_true().applicables == ()

    def test_composite_truth_table(self, get_user):
        """Test composite is the AND of its operands."""
        t, f = Condition.always_true(), Condition.always_false()

        assert Condition.composite(t, t).matches(get_user) is True
        assert Condition.composite(t, f).matches(get_user) is False
        assert Condition.composite(f, t).matches(get_user) is False
        assert Condition.composite(f, f).matches(get_user) is False

    def test_composite_is_commutative(self, get_user, post_user):
        """Test operand order doesn't change the result."""
        a, b = method('GET'), starts_with_uri('/users')

        for call in (get_user, post_user):
            assert Condition.composite(a, b).matches(call) == Condition.composite(b, a).matches(call)

    def test_composite_of_nothing_matches(self, get_user):
        """Test empty composite is always true."""
        assert Condition.composite().matches(get_user) is True

    def test_composite_accumulates_pre_actions_in_order(self):
        """Test pre-actions of both operands are kept, first operand's first."""
        a1, a2, b1 = header_action('A', '1'), header_action('A', '2'), header_action('B', '1')
        left = Condition.with_applicables(Condition.always_true(), a1, a2)
        right = Condition.with_applicables(Condition.always_true(), b1)

        combined = Condition.composite(left, right)

        assert combined.applicables == (a1, a2, b1)

    def test_with_applicables_extends_existing(self):
        """Test attaching pre-actions twice keeps the earlier ones."""
        first, second = header_action('A', '1'), header_action('B', '2')

        condition = Condition.with_applicables(Condition.with_applicables(get(), first), second)

        assert condition.applicables == (first, second)

    def test_with_applicables_keeps_predicate(self, get_user, post_user):
        """Test attaching pre-actions doesn't change matching."""
        condition = Condition.with_applicables(get(), header_action('A', '1'))

        assert condition.matches(get_user) is True
        assert condition.matches(post_user) is False

    def test_any_of(self, get_user, post_user):
        """Test disjunction."""
        condition = Condition.any_of(post(), method('DELETE'))

        assert condition.matches(post_user) is True
        assert condition.matches(get_user) is False

    def test_not(self, get_user, post_user):
        """Test negation."""
        assert get().not_().matches(get_user) is False
        assert Condition.not_of(get()).matches(post_user) is True

    def test_description(self):
        """Test descriptions compose readably."""
        condition = Condition.composite(method('get'), uri('/users'))

        assert condition.description == 'method=GET and uri=/users'

    def test_as_condition_rejects_non_callables(self):
        """Test wrapping something that isn't callable."""
        with pytest.raises(TypeError):
            as_condition('GET /users')


class TestMethodConditions:
    """Test method conditions."""

    def test_method_is_case_insensitive(self, get_user):
        """Test method name normalization."""
        assert method('get').matches(get_user) is True

    @pytest.mark.parametrize("factory,verb", [
        (get, 'GET'),
        (post, 'POST'),
        (put, 'PUT'),
        (delete, 'DELETE'),
        (patch, 'PATCH'),
        (head, 'HEAD'),
        (options, 'OPTIONS'),
    ])
    def test_verb_with_uri(self, factory, verb):
        """Test verb helpers combine method and exact URI."""
        call = Call.from_request(verb, '/items/1')

        assert factory('/items/1').matches(call) is True
        assert factory('/items/2').matches(call) is False
        assert factory().matches(call) is True

    def test_verb_mismatch(self, post_user):
        """Test wrong method doesn't match."""
        assert get('/users').matches(post_user) is False


class TestUriConditions:
    """Test URI conditions."""

    def test_uri_ignores_query(self, get_user):
        """Test exact path match ignores the query string."""
        assert uri('/users/123').matches(get_user) is True
        assert uri('/users').matches(get_user) is False

    def test_prefix_and_suffix(self, get_user):
        """Test prefix and suffix matching."""
        assert starts_with_uri('/users/').matches(get_user) is True
        assert ends_with_uri('/123').matches(get_user) is True
        assert ends_with_uri('/456').matches(get_user) is False

    def test_regex_is_full_match(self, get_user):
        """Test regex must cover the whole path."""
        assert matches_uri(r'/users/\d+').matches(get_user) is True
        assert matches_uri(r'/users').matches(get_user) is False

    @pytest.mark.parametrize("pattern,expected", [
        ('/users/*', True),
        ('/users/{id}', True),
        ('/**', True),
        ('/users/*/orders', False),
        ('/orders/*', False),
    ])
    def test_uri_pattern(self, get_user, pattern, expected):
        """Test wildcard patterns."""
        assert uri_pattern(pattern).matches(get_user) is expected

    def test_uri_pattern_escapes_literals(self):
        """Test regex characters in patterns are literal."""
        call = Call.from_request('GET', '/files/report.csv')

        assert uri_pattern('/files/*.csv').matches(call) is True
        assert uri_pattern('/files/report.csv').matches(Call.from_request('GET', '/files/reportXcsv')) is False


class TestParameterConditions:
    """Test query parameter conditions."""

    def test_presence(self, get_user):
        """Test parameter presence, including blank values."""
        assert parameter('debug').matches(get_user) is True
        assert parameter('page').matches(get_user) is False

    def test_values_in_order(self, get_user):
        """Test multi-valued parameters compare in order."""
        assert parameter('fields', 'name', 'email').matches(get_user) is True
        assert parameter('fields', 'email', 'name').matches(get_user) is False
        assert parameter('fields', 'name').matches(get_user) is False


class TestHeaderConditions:
    """Test header conditions."""

    def test_presence_case_insensitive(self, get_user):
        """Test header names are case-insensitive."""
        assert with_header('authorization').matches(get_user) is True
        assert with_header('X-Api-Key').matches(get_user) is False

    def test_exact_value(self, get_user):
        """Test exact header value."""
        assert with_header('Accept', 'application/json').matches(get_user) is True
        assert with_header('Accept', 'text/html').matches(get_user) is False

    def test_value_regex(self, get_user):
        """Test header value regex search."""
        assert with_header_matching('Authorization', r'^Bearer \w+$').matches(get_user) is True
        assert with_header_matching('Authorization', r'^Basic').matches(get_user) is False
        assert with_header_matching('X-Missing', r'.*').matches(get_user) is False


class TestBodyConditions:
    """Test body conditions."""

    def test_has_body(self, get_user, post_user):
        """Test non-empty body."""
        assert with_post_body().matches(post_user) is True
        assert with_post_body().matches(get_user) is False

    def test_body_containing(self, post_user):
        """Test substring match on the body text."""
        assert with_post_body_containing('Jane Smith').matches(post_user) is True
        assert with_post_body_containing('John').matches(post_user) is False

    def test_json_fields(self, post_user):
        """Test JSON subset matching on top-level fields."""
        assert with_post_body_containing_json({'name': 'Jane Smith', 'age': 30}).matches(post_user) is True
        assert with_post_body_containing_json({'age': 31}).matches(post_user) is False
        assert with_post_body_containing_json({'missing': None}).matches(post_user) is False

    def test_json_fields_on_non_json_body(self):
        """Test non-JSON bodies never match JSON conditions."""
        call = Call.from_request('POST', '/users', body=b'name=Jane')

        assert with_post_body_containing_json({'name': 'Jane'}).matches(call) is False
        assert matches_json_body(lambda data: True).matches(call) is False

    def test_json_predicate(self, post_user):
        """Test custom predicate over the parsed body."""
        assert matches_json_body(lambda data: data['age'] > 18).matches(post_user) is True

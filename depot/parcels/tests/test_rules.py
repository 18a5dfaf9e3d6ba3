"""
Tests for the business rule engine.
"""

from types import SimpleNamespace

from django.test import SimpleTestCase, override_settings

from ..constants import ErrorCode
from ..services.overdue import OverdueReport
from ..services.rules import (
    BusinessRule, Finding, RuleContext, RuleEngine, RuleSet, ValidationResult, default_rule_set
)


def make_package(priority='medium', customer_tier='standard', special_handling=()):
    return SimpleNamespace(priority=priority, customer_tier=customer_tier, special_handling=list(special_handling))


def make_report(hours_in_status, expected_hours, status='dispatched'):
    overdue = hours_in_status > expected_hours
    return OverdueReport(
        status=status,
        has_timeline=True,
        is_overdue=overdue,
        overdue_by_hours=max(0.0, hours_in_status - expected_hours),
        hours_in_status=hours_in_status,
        expected_hours=expected_hours,
        recommended_next_status='in-transit',
        recommendation_text='',
    )


def make_context(current, target, package=None, **kwargs):
    return RuleContext(package=package or make_package(), current_status=current, target_status=target, **kwargs)


class DefaultRulesTest(SimpleTestCase):

    def setUp(self):
        self.engine = RuleEngine()

    def test_premium_customer_pending_gets_priority_suggestion(self):
        """Test premium customer pending gets priority suggestion."""
        ctx = make_context('pending', 'processing', make_package(customer_tier='premium'))
        result = self.engine.evaluate(ctx)
        self.assertIn(ErrorCode.PRIORITY_PROCESSING, [f.code for f in result.suggestions])
        self.assertEqual(result.suggestions[0].rule_id, 'premium_customer_priority')

    def test_standard_customer_gets_no_priority_suggestion(self):
        """Test standard customer gets no priority suggestion."""
        result = self.engine.evaluate(make_context('pending', 'processing'))
        self.assertEqual(result, ValidationResult())

    def test_high_priority_long_overdue_requires_expedite(self):
        """Test high priority long overdue requires expedite."""
        ctx = make_context(
            'dispatched', 'in-transit', make_package(priority='high'),
            overdue=make_report(hours_in_status=8, expected_hours=4)
        )
        result = self.engine.evaluate(ctx)
        self.assertTrue(result.is_valid)
        self.assertIn(ErrorCode.EXPEDITE_REQUIRED, [f.code for f in result.warnings])

    def test_expedite_waits_for_threshold(self):
        """Test expedite waits for threshold."""
        ctx = make_context(
            'dispatched', 'in-transit', make_package(priority='high'),
            overdue=make_report(hours_in_status=5.5, expected_hours=4)
        )
        result = self.engine.evaluate(ctx)
        self.assertNotIn(ErrorCode.EXPEDITE_REQUIRED, [f.code for f in result.warnings])

    @override_settings(PARCELS={'EXPEDITE_AFTER_HOURS': 5})
    def test_expedite_threshold_is_configurable(self):
        """Test expedite threshold is configurable."""
        ctx = make_context(
            'dispatched', 'in-transit', make_package(priority='high'),
            overdue=make_report(hours_in_status=5.5, expected_hours=4)
        )
        self.assertIn(ErrorCode.EXPEDITE_REQUIRED, [f.code for f in self.engine.evaluate(ctx).warnings])

    def test_medium_priority_never_requires_expedite(self):
        """Test medium priority never requires expedite."""
        ctx = make_context('dispatched', 'in-transit', overdue=make_report(hours_in_status=30, expected_hours=4))
        self.assertNotIn(ErrorCode.EXPEDITE_REQUIRED, self.engine.evaluate(ctx).codes())

    def test_fragile_in_transit_warning(self):
        """Test fragile in transit warning."""
        ctx = make_context('dispatched', 'in-transit', make_package(special_handling=['fragile']))
        self.assertIn(ErrorCode.HANDLING_FRAGILE, [f.code for f in self.engine.evaluate(ctx).warnings])

    def test_temperature_sensitive_dispatch_warning(self):
        """Test temperature sensitive dispatch warning."""
        ctx = make_context('group-confirmed', 'dispatched', make_package(special_handling=['temperature_sensitive']))
        self.assertIn(ErrorCode.HANDLING_TEMPERATURE, [f.code for f in self.engine.evaluate(ctx).warnings])

    def test_handling_warnings_only_at_their_transitions(self):
        """Test handling warnings only at their transitions."""
        ctx = make_context('pending', 'processing', make_package(special_handling=['fragile', 'temperature_sensitive']))
        self.assertEqual(self.engine.evaluate(ctx).warnings, ())

    def test_group_consistency(self):
        """Test group consistency."""
        shipment = SimpleNamespace(id='S1')
        leaving = make_context('grouped', 'processing', shipment=shipment)
        staying = make_context('grouped', 'group-confirmed', shipment=shipment)
        self.assertIn(ErrorCode.GROUP_CONSISTENCY, self.engine.evaluate(leaving).codes())
        self.assertNotIn(ErrorCode.GROUP_CONSISTENCY, self.engine.evaluate(staying).codes())

    def test_group_consistency_needs_a_shipment(self):
        """Test group consistency needs a shipment."""
        self.assertNotIn(ErrorCode.GROUP_CONSISTENCY, self.engine.evaluate(make_context('grouped', 'processing')).codes())

    def test_customer_visibility_warning(self):
        """Test customer visibility warning."""
        ctx = make_context('processing', 'ready-for-grouping')
        self.assertEqual([f.code for f in self.engine.evaluate(ctx).warnings], [ErrorCode.CUSTOMER_VISIBILITY])

    def test_premium_delay_suggestion(self):
        """Test premium delay suggestion."""
        ctx = make_context('in-transit', 'delayed', make_package(customer_tier='enterprise'), reason='Storm')
        self.assertIn(ErrorCode.PREMIUM_DELAY, [f.code for f in self.engine.evaluate(ctx).suggestions])

    def test_high_priority_long_dwell_suggestion(self):
        """Test high priority long dwell suggestion."""
        ctx = make_context('dispatched', 'shipped', make_package(priority='high'))
        self.assertIn(ErrorCode.LONG_DWELL, [f.code for f in self.engine.evaluate(ctx).suggestions])

    def test_inapplicable_handling_rules_stay_quiet(self):
        """Test inapplicable handling rules stay quiet."""
        ctx = make_context(
            'processing', 'ready-for-grouping',
            make_package(priority='high', customer_tier='premium', special_handling=['fragile'])
        )
        rule_ids = [f.rule_id for f in self.engine.evaluate(ctx).warnings]
        self.assertEqual(rule_ids, ['customer_visibility'])


class RuleEngineTest(SimpleTestCase):

    def blocking_rule(self, rule_id='no_lost', priority=10):
        return BusinessRule(
            id=rule_id,
            name='No Lost',
            priority=priority,
            applies=lambda ctx: ctx.target_status == 'lost',
            evaluate=lambda ctx: ValidationResult(errors=(Finding('Blocked', 'Lost is not allowed'),)),
        )

    def test_empty_rule_set(self):
        """Test empty rule set."""
        engine = RuleEngine(RuleSet())
        self.assertEqual(engine.evaluate(make_context('pending', 'processing')), ValidationResult())

    def test_blocking_rule(self):
        """Test blocking rule."""
        engine = RuleEngine(RuleSet((self.blocking_rule(),)))
        result = engine.evaluate(make_context('in-transit', 'lost', reason='Gone'))
        self.assertFalse(result.is_valid)
        self.assertEqual(result.errors[0].rule_id, 'no_lost')

    def test_rule_not_applicable_is_skipped(self):
        """Test rule not applicable is skipped."""
        engine = RuleEngine(RuleSet((self.blocking_rule(),)))
        self.assertTrue(engine.evaluate(make_context('pending', 'processing')).is_valid)

    def test_failing_rule_becomes_warning(self):
        """Test failing rule becomes warning."""
        def explode(ctx):
            raise RuntimeError('boom')

        broken = BusinessRule(id='broken', name='Broken', priority=999, applies=lambda ctx: True, evaluate=explode)
        engine = RuleEngine(default_rule_set().with_rule(broken))

        with self.assertLogs('parcels.services.rules', level='ERROR'):
            result = engine.evaluate(make_context('processing', 'ready-for-grouping'))

        self.assertTrue(result.is_valid)
        self.assertEqual([f.code for f in result.warnings], [ErrorCode.RULE_FAILED, ErrorCode.CUSTOMER_VISIBILITY])
        self.assertEqual(result.warnings[0].rule_id, 'broken')

    def test_rule_set_is_sorted_and_immutable(self):
        """Test rule set is sorted and immutable."""
        rules = default_rule_set()
        self.assertEqual(
            [r.id for r in rules],
            [
                'premium_customer_priority', 'high_priority_processing', 'special_handling_validation',
                'group_consistency', 'customer_visibility', 'premium_delay_handling', 'high_priority_long_dwell',
            ]
        )
        extended = rules.with_rule(self.blocking_rule())
        self.assertEqual(len(rules), 7)
        self.assertEqual(len(extended), 8)
        self.assertEqual(extended.rules[-1].id, 'no_lost')

    def test_with_rule_replaces_by_id(self):
        """Test with rule replaces by id."""
        rules = RuleSet((self.blocking_rule(priority=10),)).with_rule(self.blocking_rule(priority=500))
        self.assertEqual(len(rules), 1)
        self.assertEqual(rules.get('no_lost').priority, 500)

    def test_without(self):
        """Test removing a rule by id."""
        rules = default_rule_set().without('customer_visibility')
        self.assertNotIn('customer_visibility', rules)
        self.assertIn('group_consistency', rules)

    def test_describe(self):
        """Test the rule set describes its rules in priority order."""
        described = default_rule_set().describe()
        self.assertEqual(described[0]['id'], 'premium_customer_priority')
        self.assertEqual(described[0]['priority'], 100)
        self.assertNotIn('applies', described[0])


class ValidationResultTest(SimpleTestCase):

    def test_merge_deduplicates_in_order(self):
        """Test merge deduplicates in order."""
        a = ValidationResult(warnings=(Finding('A', 'first'), Finding('B', 'second')))
        b = ValidationResult(warnings=(Finding('A', 'first', 'other_rule'), Finding('C', 'third')))
        merged = a.merge(b)
        self.assertEqual([f.code for f in merged.warnings], ['A', 'B', 'C'])

    def test_to_dict(self):
        """Test dictionary form of a validation result."""
        result = ValidationResult(errors=(Finding('X', 'bad', 'r1'),))
        self.assertEqual(result.to_dict()['errors'], [{'code': 'X', 'message': 'bad', 'rule_id': 'r1'}])
        self.assertFalse(result.is_valid)

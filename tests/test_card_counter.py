"""Tests for the Hi-Lo card counter."""

import random
import unittest

from blackjack.card import Card, RANKS
from blackjack.card_counter import CardCounter
from blackjack.config import BotConfig


def _cards(*ranks):
    return [Card(rank) for rank in ranks]


class TestRunningCount(unittest.TestCase):

    def setUp(self):
        self.counter = CardCounter(BotConfig())

    def test_running_count_is_sum_of_weights(self):
        cards = _cards('2', '5', '7', '9', 'K', 'A', '10', '3')
        self.counter.observe_many(cards)
        self.assertEqual(self.counter.running_count, sum(c.hi_lo_weight for c in cards))
        self.assertEqual(self.counter.running_count, 0)
        self.assertEqual(self.counter.cards_dealt, 8)

    def test_running_count_invariant_under_reordering(self):
        rng = random.Random(42)
        cards = [Card(rng.choice(RANKS)) for _ in range(60)]
        shuffled = list(cards)
        rng.shuffle(shuffled)

        other = CardCounter(BotConfig())
        self.counter.observe_many(cards)
        other.observe_many(shuffled)

        self.assertEqual(self.counter.running_count, other.running_count)
        self.assertEqual(self.counter.true_count(), other.true_count())

    def test_cards_dealt_never_exceeds_shoe(self):
        counter = CardCounter(BotConfig(shoe_size=52))
        counter.observe_many(_cards('7') * 60)
        self.assertEqual(counter.cards_dealt, 52)

    def test_reset(self):
        self.counter.observe_many(_cards('2', '3', '4'))
        self.counter.reset()
        self.assertEqual(self.counter.running_count, 0)
        self.assertEqual(self.counter.cards_dealt, 0)


class TestTrueCount(unittest.TestCase):

    def test_six_low_cards_scenario(self):
        """+6 running count with 400 cards left rounds to a true count of 0.8."""
        counter = CardCounter(BotConfig())
        counter.observe_many(_cards('7', '8', '9') * 3 + _cards('8'))
        counter.observe_many(_cards('2', '3', '4', '5', '6', '6'))

        self.assertEqual(counter.running_count, 6)
        self.assertEqual(counter.cards_remaining, 400)
        self.assertEqual(counter.true_count(), 0.8)
        self.assertEqual(counter.recommended_bet(1000), 25)

    def test_zero_when_shoe_exhausted(self):
        counter = CardCounter(BotConfig(shoe_size=52))
        counter.observe_many(_cards('2') * 52)
        self.assertEqual(counter.running_count, 52)
        self.assertEqual(counter.true_count(), 0.0)

    def test_zero_when_disabled(self):
        counter = CardCounter(BotConfig(card_counting_enabled=False))
        counter.running_count = 20
        self.assertEqual(counter.true_count(), 0.0)

    def test_rounded_to_one_decimal(self):
        counter = CardCounter(BotConfig())
        counter.cards_dealt = 16
        counter.running_count = 7   # 7 / (400 / 52) = 0.91
        self.assertEqual(counter.true_count(), 0.9)

    def test_halves_round_up(self):
        counter = CardCounter(BotConfig())
        counter.cards_dealt = 208   # 4 decks left
        counter.running_count = 9   # 9 / 4 = 2.25
        self.assertEqual(counter.true_count(), 2.3)
        counter.running_count = -9
        self.assertEqual(counter.true_count(), -2.2)


class TestBetting(unittest.TestCase):

    def setUp(self):
        self.counter = CardCounter(BotConfig(min_bet=25, max_bet=100))

    def _bet_at(self, true_count, chips=1000):
        # Full shoe: 8 decks remaining
        self.counter.running_count = int(true_count * 8)
        return self.counter.recommended_bet(chips)

    def test_tiers(self):
        self.assertEqual(self._bet_at(0), 25)
        self.assertEqual(self._bet_at(-3), 25)
        self.assertEqual(self._bet_at(2), 40)
        self.assertEqual(self._bet_at(3), 60)
        self.assertEqual(self._bet_at(4), 80)
        self.assertEqual(self._bet_at(5), 100)
        self.assertEqual(self._bet_at(7), 100)

    def test_monotonic_across_tier_boundaries(self):
        bets = [self._bet_at(tc) for tc in (-2, 0, 1, 2, 3, 4, 5, 6)]
        self.assertEqual(bets, sorted(bets))

    def test_capped_at_available_chips(self):
        self.assertEqual(self._bet_at(5, chips=50), 50)
        self.assertEqual(self._bet_at(4, chips=50), 40)

    def test_configurable_threshold(self):
        counter = CardCounter(BotConfig(count_threshold=1.0))
        counter.running_count = 8   # TC 1.0
        self.assertEqual(counter.recommended_bet(1000), 40)

    def test_disabled_always_minimum(self):
        counter = CardCounter(BotConfig(card_counting_enabled=False, min_bet=25))
        counter.running_count = 80
        self.assertEqual(counter.recommended_bet(1000), 25)


class TestSignals(unittest.TestCase):

    def setUp(self):
        self.counter = CardCounter(BotConfig())

    def test_insurance_threshold(self):
        self.counter.running_count = 16   # TC 2
        self.assertFalse(self.counter.should_take_insurance())
        self.counter.running_count = 24   # TC 3
        self.assertTrue(self.counter.should_take_insurance())

    def test_strategy_modifier_scaled_and_clamped(self):
        self.counter.running_count = 8    # TC 1
        self.assertAlmostEqual(self.counter.strategy_modifier(), 0.02)
        self.counter.running_count = 80   # TC 10
        self.assertAlmostEqual(self.counter.strategy_modifier(), 0.1)
        self.counter.running_count = -80
        self.assertAlmostEqual(self.counter.strategy_modifier(), -0.1)

    def test_disabled_fallbacks(self):
        counter = CardCounter(BotConfig(card_counting_enabled=False))
        counter.observe(Card('2'))
        self.assertEqual(counter.running_count, 0)
        self.assertEqual(counter.cards_dealt, 0)
        self.assertFalse(counter.should_take_insurance())
        self.assertEqual(counter.strategy_modifier(), 0.0)

    def test_set_enabled(self):
        counter = CardCounter(BotConfig(card_counting_enabled=False))
        counter.set_enabled(True)
        counter.observe(Card('5'))
        self.assertEqual(counter.running_count, 1)

    def test_stats(self):
        self.counter.observe_many(_cards('2', 'K'))
        stats = self.counter.get_stats()
        self.assertEqual(stats['cards_dealt'], 2)
        self.assertEqual(stats['cards_remaining'], 414)
        self.assertTrue(stats['enabled'])


if __name__ == '__main__':
    unittest.main()

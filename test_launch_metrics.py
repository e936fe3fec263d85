import unittest

from fake_chain import PAIR, TOKEN, TX_HASH, WETH
from launch_metrics import SpecsBreakdown, build_specs, compute_launch_metrics
from mechanism_probe import MechanismSnapshot
from receipt_correlator import LaunchFact

E18 = 10 ** 18


def _fact(**overrides):
    fields = dict(
        token=TOKEN,
        transaction_hash=TX_HASH,
        name="Moon",
        symbol="MOON",
        pair=PAIR,
        token0=TOKEN,
        token1=WETH,
        dev_amount=50 * E18,
        lp_token_amount=500 * E18,
        lp_native_wei=2 * E18,
        total_supply=1000 * E18,
    )
    fields.update(overrides)
    return LaunchFact(**fields)


class LaunchMetricsTests(unittest.TestCase):
    def test_metrics_with_rate(self):
        metrics = compute_launch_metrics(_fact(), 2000.0)
        self.assertAlmostEqual(metrics.dev_hold_pct, 5.0)
        self.assertAlmostEqual(metrics.liquidity_native, 2.0)
        self.assertAlmostEqual(metrics.liquidity_usd, 8000.0)
        self.assertAlmostEqual(metrics.fdv_native, 4.0)
        self.assertAlmostEqual(metrics.fdv_usd, 8000.0)

    def test_missing_rate_keeps_native_figures_only(self):
        metrics = compute_launch_metrics(_fact(), 0.0)
        self.assertEqual(metrics.liquidity_usd, 0.0)
        self.assertEqual(metrics.fdv_usd, 0.0)
        self.assertAlmostEqual(metrics.fdv_native, 4.0)

    def test_zero_supply_and_missing_liquidity(self):
        metrics = compute_launch_metrics(_fact(total_supply=0, lp_token_amount=0), 2000.0)
        self.assertEqual(metrics.dev_hold_pct, 0.0)
        self.assertEqual(metrics.fdv_native, 0.0)
        self.assertEqual(metrics.fdv_usd, 0.0)


class BuildSpecsTests(unittest.TestCase):
    def test_reward_slice_is_remainder_of_reflect(self):
        snapshot = MechanismSnapshot({"reflect": 5, "auto_lp_share": 40, "gamble": 10, "dev_fee": 10})
        specs = build_specs(snapshot)
        self.assertEqual(specs.reflect_pct, 5.0)
        self.assertEqual((specs.auto_lp_pct, specs.gamble_pct, specs.dev_pct), (40.0, 10.0, 10.0))
        self.assertEqual(specs.reward_pct, 40.0)

    def test_reward_clamped_at_zero(self):
        snapshot = MechanismSnapshot({"reflect": 5, "auto_lp_share": 70, "dev_fee": 50})
        self.assertEqual(build_specs(snapshot).reward_pct, 0.0)

    def test_no_reward_without_reflect(self):
        specs = build_specs(MechanismSnapshot({"auto_lp_share": 40, "burn_buy": 2}))
        self.assertIsNone(specs.reflect_pct)
        self.assertIsNone(specs.reward_pct)
        self.assertEqual(specs.burn_buy_pct, 2.0)

    def test_reflect_falls_back_across_synonyms(self):
        specs = build_specs(MechanismSnapshot({"reflection": 3}))
        self.assertEqual(specs.reflect_pct, 3.0)
        self.assertEqual(specs.reward_pct, 100.0)

    def test_flags_and_periods(self):
        snapshot = MechanismSnapshot(
            {"antibot": False, "death_time": 7200, "gamble_period": 6, "max_daily_pump": 150, "apy": 250}
        )
        specs = build_specs(snapshot)
        self.assertIs(specs.antibot, False)
        self.assertEqual(specs.reaper_period_hours, 2.0)
        self.assertEqual(specs.gamble_period_hours, 6)
        self.assertEqual(specs.max_daily_pump_pct, 150.0)
        self.assertEqual(specs.apy_day_pct, 2.5)

    def test_onchain_denominator_seeds_unknown_keys(self):
        snapshot = MechanismSnapshot({"custom_fee": 300}, denominator=1000)
        specs = build_specs(snapshot, key_denoms={})
        self.assertTrue(specs.is_empty)
        snapshot = MechanismSnapshot({"reflect": 300}, denominator=10000)
        self.assertEqual(build_specs(snapshot, key_denoms={}).reflect_pct, 3.0)

    def test_empty_snapshot(self):
        self.assertEqual(build_specs(MechanismSnapshot()), SpecsBreakdown())
        self.assertTrue(SpecsBreakdown().is_empty)


if __name__ == "__main__":
    unittest.main()

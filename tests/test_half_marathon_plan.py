from datetime import date, timedelta
import unittest

import half_marathon_plan as hmp
from half_marathon_plan import SlotType


START = date(2024, 1, 1)  # Monday


class EstimatePacesTests(unittest.TestCase):
    def test_no_time_means_no_paces(self):
        self.assertIsNone(hmp.estimate_paces(None))
        self.assertIsNone(hmp.estimate_paces(0))

    def test_implausible_time_means_no_paces(self):
        self.assertIsNone(hmp.estimate_paces(10**400))
        self.assertIsNone(hmp.estimate_paces(24 * 3600 + 1))
        plan = hmp.make_plan(START, 12, 5, sec5k=10**400)
        self.assertIsNone(plan.paces)
        self.assertEqual(12, len(plan.weeks))
        self.assertEqual("放鬆 ~ E 配速", plan.weeks[0].sessions[0].detail)

    def test_25_minute_5k(self):
        paces = hmp.estimate_paces(1500)
        self.assertAlmostEqual(360.0, paces.easy)
        self.assertAlmostEqual(336.0, paces.marathon)
        self.assertAlmostEqual(315.0, paces.threshold)
        self.assertAlmostEqual(285.0, paces.interval)
        self.assertAlmostEqual(270.0, paces.repeat)
        self.assertAlmostEqual(354.0, paces.long)

    def test_zone_ordering_holds_for_any_time(self):
        for sec5k in range(600, 3600, 37):
            with self.subTest(sec5k=sec5k):
                p = hmp.estimate_paces(sec5k)
                self.assertTrue(p.repeat < p.interval < p.threshold < p.marathon < p.easy < p.long)


class SplitWeeksTests(unittest.TestCase):
    def test_twelve_weeks(self):
        self.assertEqual({"base": 4, "build": 4, "peak": 2, "taper": 2}, hmp.split_weeks(12))

    def test_known_allocations(self):
        self.assertEqual({"base": 3, "build": 2, "peak": 2, "taper": 1}, hmp.split_weeks(8))
        self.assertEqual({"base": 6, "build": 5, "peak": 3, "taper": 2}, hmp.split_weeks(16))
        self.assertEqual({"base": 7, "build": 6, "peak": 4, "taper": 3}, hmp.split_weeks(20))

    def test_counts_sum_to_total_and_are_never_negative(self):
        for total in range(1, 41):
            with self.subTest(total=total):
                counts = hmp.split_weeks(total)
                self.assertEqual(hmp.BLOCK_ORDER, list(counts))
                self.assertEqual(total, sum(counts.values()))
                self.assertTrue(all(v >= 0 for v in counts.values()))

    def test_tiny_totals_trim_from_the_end(self):
        self.assertEqual({"base": 2, "build": 2, "peak": 0, "taper": 0}, hmp.split_weeks(4))
        self.assertEqual({"base": 1, "build": 0, "peak": 0, "taper": 0}, hmp.split_weeks(1))

    def test_blocks_are_assigned_in_order(self):
        self.assertEqual(
            ["base"] * 4 + ["build"] * 4 + ["peak"] * 2 + ["taper"] * 2,
            hmp.assign_blocks(12),
        )


class WeekSlotsTests(unittest.TestCase):
    def test_run_days_only_demote_easy_slots(self):
        E, Q1, Q2, L, O = SlotType.EASY, SlotType.QUALITY1, SlotType.QUALITY2, SlotType.LONG, SlotType.OFF
        self.assertEqual([E, Q1, O, Q2, O, O, L], hmp.week_slots(3))
        self.assertEqual([E, Q1, E, Q2, O, O, L], hmp.week_slots(4))
        self.assertEqual([E, Q1, E, Q2, O, O, L], hmp.week_slots(5))
        self.assertEqual([E, Q1, E, Q2, E, O, L], hmp.week_slots(6))

    def test_out_of_range_run_days_still_yield_a_week(self):
        slots = hmp.week_slots(1)
        self.assertEqual(7, len(slots))
        self.assertNotIn(SlotType.EASY, slots)
        self.assertIn(SlotType.LONG, slots)


class MakePlanTests(unittest.TestCase):
    def setUp(self):
        self.plan = hmp.make_plan(START, 12, 5, sec5k=1500)

    def test_shape_and_blocks(self):
        weeks = self.plan.weeks
        self.assertEqual(12, len(weeks))
        self.assertEqual(list(range(1, 13)), [w.week_index for w in weeks])
        self.assertEqual(hmp.assign_blocks(12), [w.block for w in weeks])
        self.assertTrue(all(len(w.sessions) == 7 for w in weeks))

    def test_dates_are_consecutive_from_start(self):
        dates = [s.date for w in self.plan.weeks for s in w.sessions]
        self.assertEqual([START + timedelta(days=i) for i in range(84)], dates)
        self.assertEqual(date(2024, 3, 24), dates[-1])

    def test_first_week_with_five_run_days(self):
        week = self.plan.weeks[0]
        self.assertEqual("base", week.block)
        slots = [s.slot for s in week.sessions]
        self.assertEqual(2, slots.count(SlotType.EASY))
        self.assertEqual(2, slots.count(SlotType.QUALITY1) + slots.count(SlotType.QUALITY2))
        self.assertEqual(1, slots.count(SlotType.LONG))
        self.assertEqual(2, slots.count(SlotType.OFF))
        # Friday is the demoted easy day.
        self.assertEqual(SlotType.OFF, week.sessions[4].slot)

    def test_first_week_content(self):
        monday, tuesday, _, _, friday, _, sunday = self.plan.weeks[0].sessions
        self.assertEqual("Easy 6km", monday.label)
        self.assertEqual("放鬆 ~ 6:00/km", monday.detail)
        self.assertEqual("品質課", tuesday.label)
        self.assertEqual("T 閾值 4×5′ (5:15/km)，每次慢跑 2′ 回復", tuesday.detail)
        self.assertEqual("休息 / 交叉訓練", friday.label)
        self.assertEqual("可做核心/伸展", friday.detail)
        self.assertEqual("長距離 10km", sunday.label)
        self.assertEqual("配速 ~ 5:54/km", sunday.detail)

    def test_quality_workout_follows_the_block(self):
        details = {w.block: w.sessions[1].detail for w in self.plan.weeks}
        self.assertEqual("I 間歇 6×800m (4:45/km)，每次 400m 慢跑回復", details["build"])
        self.assertEqual("特異性：2×5km @ 5:36/km ~ HM 目標配速，中間慢跑 1km", details["peak"])
        self.assertEqual("減量：T 3×6′ (5:15/km)，總量降低，保持感覺", details["taper"])
        for week in self.plan.weeks:
            self.assertEqual(week.sessions[1].detail, week.sessions[3].detail)

    def test_volume_progression_and_taper(self):
        long_runs = [w.sessions[6].label for w in self.plan.weeks]
        self.assertEqual("長距離 17km", long_runs[9])  # week 10, peak
        self.assertEqual("長距離 12km", long_runs[10])  # taper
        self.assertEqual("長距離 12km", long_runs[11])
        self.assertEqual("Easy 11km", self.plan.weeks[11].sessions[0].label)

    def test_distance_caps(self):
        self.assertEqual(22, hmp.long_run_km(19, "peak"))
        self.assertEqual(15, hmp.long_run_km(19, "taper"))
        self.assertEqual(12, hmp.long_run_km(0, "taper"))
        self.assertEqual(12, hmp.easy_run_km(30))

    def test_generic_labels_without_paces(self):
        plan = hmp.make_plan(START, 12, 5)
        self.assertIsNone(plan.paces)
        first = plan.weeks[0].sessions
        self.assertEqual("放鬆 ~ E 配速", first[0].detail)
        self.assertEqual("T 閾值 4×5′ (T 配速)，每次慢跑 2′ 回復", first[1].detail)
        self.assertEqual("配速 ~ 舒適對話配速", first[6].detail)
        self.assertIn("I 配速", hmp.quality_workout("build", None))
        self.assertIn("M 配速", hmp.quality_workout("peak", None))

    def test_generation_is_idempotent(self):
        self.assertEqual(self.plan, hmp.make_plan(START, 12, 5, sec5k=1500))

    def test_half_marathon_target_does_not_change_the_plan(self):
        # Known no-op input: paces come from the 5K time only.
        with_target = hmp.make_plan(START, 12, 5, sec5k=1500, hm_target=5400)
        other_target = hmp.make_plan(START, 12, 5, sec5k=1500, hm_target=7200)
        self.assertEqual(self.plan, with_target)
        self.assertEqual(with_target, other_target)

    def test_edge_totals(self):
        self.assertEqual((), hmp.make_plan(START, 0, 5).weeks)
        self.assertEqual(3, len(hmp.make_plan(START, 3, 4).weeks))
        self.assertEqual(20, len(hmp.make_plan(START, 20, 6, sec5k=1200).weeks))

    def test_unknown_block_is_rejected(self):
        with self.assertRaises(ValueError):
            hmp.build_week(0, "recovery", START, 5, None)
        with self.assertRaises(ValueError):
            hmp.block_info("recovery")

    def test_block_summary(self):
        self.assertEqual(
            {"base": (1, 4), "build": (5, 8), "peak": (9, 10), "taper": (11, 12)},
            hmp.summarize_blocks(self.plan.weeks),
        )


class PlanConversionTests(unittest.TestCase):
    def setUp(self):
        self.weeks = hmp.make_plan(START, 8, 4, sec5k=1320).weeks

    def test_dataframe_round_trip_keeps_edits(self):
        df = hmp.plan_to_dataframe(self.weeks)
        self.assertEqual(hmp.PLAN_COLUMNS, list(df.columns))
        self.assertEqual(56, len(df))
        self.assertEqual("一", df.loc[0, "day"])
        self.assertEqual("日", df.loc[6, "day"])

        self.assertEqual(self.weeks, hmp.plan_from_dataframe(df))

        df.loc[3, "detail"] = "Hill repeats instead"
        rebuilt = hmp.plan_from_dataframe(df)
        self.assertEqual("Hill repeats instead", rebuilt[0].sessions[3].detail)
        self.assertEqual(self.weeks[1:], rebuilt[1:])

    def test_records_round_trip(self):
        records = hmp.plan_to_records(self.weeks)
        self.assertEqual("2024-01-01", records[0]["sessions"][0]["date"])
        self.assertEqual("EASY", records[0]["sessions"][0]["slot"])
        self.assertEqual(self.weeks, hmp.plan_from_records(records))

    def test_records_without_slot_or_with_timestamp_dates(self):
        records = [
            {
                "weekIndex": 1,
                "block": "base",
                "sessions": [
                    {"date": "2024-01-01T00:00:00.000Z", "label": "Easy 6km", "detail": "放鬆 ~ E 配速"},
                ],
            }
        ]
        weeks = hmp.plan_from_records(records)
        self.assertEqual(date(2024, 1, 1), weeks[0].sessions[0].date)
        self.assertIsNone(weeks[0].sessions[0].slot)

    def test_malformed_records_raise_value_error(self):
        for bad in [{"weekIndex": 1}, [{"block": "base"}], [{"weekIndex": 1, "block": "x", "sessions": []}], ["oops"]]:
            with self.subTest(bad=bad):
                with self.assertRaises(ValueError):
                    hmp.plan_from_records(bad)


if __name__ == "__main__":
    unittest.main()

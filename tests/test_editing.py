import copy
import unittest
from datetime import date

from trainsync.domain.models import StopKey, SystemId, SystemStatus
from trainsync.ingest.tabular import parse
from trainsync.services.editing import (
    edit_stop_time,
    set_verification,
    set_visibility,
    toggle_visibility,
    update_service,
)
from trainsync.services.period_store import build_period
from trainsync.services.reconciliation import SystemCheck, check_system

OUT_9339 = ["12:22", "13:18", "13:44", "13:53", "14:45", "15:50"] + ["-"] * 6
RET_9320 = ["-"] * 6 + ["-", "-", "-", "09:43", "10:09", "11:05"]


def make_period():
    text = "\n".join([";".join(["Friday", "9320", *RET_9320]), ";".join(["", "9339", *OUT_9339])])
    return build_period("2025-X1", "Summer", "2025-06-01", "2025-07-25", parse(text)).period


class VisibilityTests(unittest.TestCase):
    def setUp(self):
        self.svc = make_period().actual_services[0]

    def test_hide_and_reenable(self):
        set_visibility(self.svc, SystemId.SYSTEM_B, False)
        self.assertFalse(self.svc.system_b.visible)
        self.assertEqual(self.svc.system_b.status, SystemStatus.NOT_VISIBLE)
        self.assertEqual(check_system(self.svc, SystemId.SYSTEM_B), SystemCheck.NOT_VISIBLE)

        set_visibility(self.svc, "system_b", True)
        self.assertTrue(self.svc.system_b.visible)
        self.assertEqual(self.svc.system_b.status, SystemStatus.MANUALLY_CREATED)

        self.assertFalse(toggle_visibility(self.svc, SystemId.SYSTEM_C))
        self.assertTrue(toggle_visibility(self.svc, SystemId.SYSTEM_C))
        self.assertEqual(self.svc.system_c.status, SystemStatus.AUTOMATICALLY_CREATED)

    def test_reference_cannot_be_hidden(self):
        with self.assertRaises(ValueError):
            set_visibility(self.svc, SystemId.REFERENCE, False)

    def test_verification(self):
        set_verification(self.svc, "system_c", False)
        self.assertFalse(self.svc.verification.system_c_ok)
        self.assertTrue(self.svc.verification.system_b_ok)
        with self.assertRaises(KeyError):
            set_verification(self.svc, SystemId.REFERENCE, False)


class StopEditTests(unittest.TestCase):
    def setUp(self):
        self.period = make_period()
        self.template = self.period.regime["friday"][1]
        self.svc = next(
            s for s in self.period.actual_services if s.key == (date(2025, 7, 4), "9339")
        )

    def test_edit_against_template(self):
        st = edit_stop_time(self.svc, SystemId.REFERENCE, StopKey.OUT_PNO_DEP, "12:20", self.template)
        self.assertTrue(st.changed)
        st = edit_stop_time(self.svc, SystemId.REFERENCE, StopKey.OUT_PNO_DEP, "12:22", self.template)
        self.assertFalse(st.changed)
        st = edit_stop_time(self.svc, SystemId.REFERENCE, StopKey.RET_PNO_ARR, "19:00", self.template)
        self.assertTrue(st.changed)

    def test_clear_stop(self):
        self.assertIsNone(edit_stop_time(self.svc, SystemId.SYSTEM_B, StopKey.OUT_AMS_ARR, "-"))
        self.assertNotIn(StopKey.OUT_AMS_ARR, self.svc.system_b.schedule)
        self.assertEqual(check_system(self.svc, SystemId.SYSTEM_B), SystemCheck.DISCREPANT)

    def test_downstream_edit_is_discrepancy(self):
        edit_stop_time(self.svc, SystemId.SYSTEM_B, StopKey.OUT_PNO_DEP, "12:20")
        self.assertEqual(check_system(self.svc, SystemId.SYSTEM_B), SystemCheck.DISCREPANT)
        self.assertEqual(check_system(self.svc, SystemId.SYSTEM_C), SystemCheck.CONSISTENT)
        # flags do not count towards agreement
        edit_stop_time(self.svc, SystemId.SYSTEM_B, StopKey.OUT_PNO_DEP, "12:22", self.template)
        self.assertEqual(check_system(self.svc, SystemId.SYSTEM_B), SystemCheck.CONSISTENT)

    def test_emptied_downstream_is_missing(self):
        for key, _ in list(self.svc.system_c.schedule.items()):
            edit_stop_time(self.svc, SystemId.SYSTEM_C, key, "")
        self.assertEqual(check_system(self.svc, SystemId.SYSTEM_C), SystemCheck.MISSING)


class UpdateServiceTests(unittest.TestCase):
    def test_update_returns_new_period(self):
        period = make_period()
        before = copy.deepcopy(period)
        svc = period.actual_services[3].copy()
        edit_stop_time(svc, SystemId.SYSTEM_B, StopKey.RET_BRU_DEP, "09:50")

        updated = update_service(period, svc)
        self.assertEqual(updated.actual_services[3], svc)
        self.assertEqual(period, before)

    def test_unknown_service(self):
        period = make_period()
        svc = period.actual_services[0].copy()
        svc.service_id = "actual-0000-2025-07-04"
        with self.assertRaises(KeyError):
            update_service(period, svc)


if __name__ == "__main__":
    unittest.main()

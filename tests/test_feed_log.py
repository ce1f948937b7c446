"""
Tests for feed log records and their Excel export.
"""
from datetime import date

import pytest
from openpyxl import load_workbook

from nutrient_doser.schemas.dosing_schemas import DosingRequest, GrowStage, VolumeUnit
from nutrient_doser.services.feed_log_excel_service import FEED_LOG_COLUMNS, FeedLogExcelService
from nutrient_doser.services.feed_log_service import build_feed_log, water_amount_in
from nutrient_doser.services.jacks_calculator import compute_dosing


@pytest.fixture
def vegetative_log():
    request = DosingRequest(stage=GrowStage.VEGETATIVE, volume=5, source_water_ppm=150)
    response = compute_dosing(request)
    return build_feed_log(request, response, log_date=date(2024, 3, 1), notes="Top dress day")


@pytest.fixture
def bud_set_log():
    request = DosingRequest(stage=GrowStage.BUD_SET, volume=10, volume_unit=VolumeUnit.LITERS)
    response = compute_dosing(request)
    return build_feed_log(request, response, log_date=date(2024, 4, 12))


class TestBuildFeedLog:
    """Plain FEEDING records built from a computed dose."""

    def test_record_fields(self, vegetative_log):
        assert vegetative_log["date"] == "2024-03-01"
        assert vegetative_log["type"] == "FEEDING"
        assert vegetative_log["stage"] == "vegetative"
        assert vegetative_log["water_ppm"] == 150
        assert vegetative_log["target_ppm"] == 1200
        assert vegetative_log["final_ppm"] == pytest.approx(1200)
        assert vegetative_log["ppm_scale"] == 500
        assert vegetative_log["notes"] == "Top dress day"

    def test_water_amount_in_milliliters(self, vegetative_log):
        assert vegetative_log["water_amount_ml"] == pytest.approx(18927.1, abs=0.1)
        assert water_amount_in(vegetative_log, VolumeUnit.GALLONS) == pytest.approx(5.0, rel=1e-4)

    def test_product_ppm_keys(self, vegetative_log):
        assert vegetative_log["part_a_ppm"] == pytest.approx(507.4, abs=0.1)
        assert vegetative_log["part_c_ppm"] is not None
        assert vegetative_log["bloom_ppm"] is None
        assert vegetative_log["finish_ppm"] is None

    def test_nutrients_follow_stage(self, bud_set_log):
        names = [n["name"] for n in bud_set_log["nutrients"]]

        assert names == ["Bloom (10-30-20)", "Epsom Salt"]
        assert bud_set_log["part_a_ppm"] is None
        assert bud_set_log["notes"] == ""

    def test_default_date_is_today(self):
        request = DosingRequest(stage=GrowStage.FLOWER)
        record = build_feed_log(request, compute_dosing(request))
        assert record["date"] == date.today().isoformat()


class TestFeedLogExcel:
    """openpyxl workbook export."""

    def test_workbook_layout(self, vegetative_log, bud_set_log):
        buffer = FeedLogExcelService().generate_feed_log_excel([vegetative_log, bud_set_log], user_name="Sam")
        wb = load_workbook(buffer)

        assert wb.sheetnames == ["Feed Logs", "Summary"]
        ws = wb["Feed Logs"]
        assert [cell.value for cell in ws[1]] == [header for header, _ in FEED_LOG_COLUMNS]
        assert ws.max_row == 3
        assert ws["A2"].value == "2024-03-01"
        assert ws["B3"].value == "bud_set"
        assert ws["C2"].value == pytest.approx(5.0)

    def test_summary_sheet(self, vegetative_log, bud_set_log):
        buffer = FeedLogExcelService().generate_feed_log_excel([vegetative_log, bud_set_log], user_name="Sam")
        ws = load_workbook(buffer)["Summary"]

        assert ws["B3"].value == "Sam"
        assert ws["B5"].value == 2
        assert ws["B6"].value == pytest.approx(1150.0)

    def test_empty_export(self):
        buffer = FeedLogExcelService().generate_feed_log_excel([])
        wb = load_workbook(buffer)

        assert wb["Feed Logs"].max_row == 1
        assert wb["Summary"]["B5"].value == 0

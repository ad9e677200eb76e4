from datetime import datetime

from src.api.nlp import parse_date_from_content

TODAY = datetime(2030, 3, 15, 10, 30)


class TestParseDateFromContent:
    def test_day_keyword_with_afternoon_time(self):
        parsed = parse_date_from_content("내일 오후 3시 회의", today=TODAY)
        assert parsed.content == "회의"
        assert parsed.due_date == datetime(2030, 3, 16, 15, 0)

    def test_no_keywords_returns_text_untouched(self):
        parsed = parse_date_from_content("  장보기  ", today=TODAY)
        assert parsed.content == "  장보기  "
        assert parsed.due_date is None

    def test_day_keyword_only_lands_on_midnight(self):
        parsed = parse_date_from_content("모레 병원 예약", today=TODAY)
        assert parsed.content == "병원 예약"
        assert parsed.due_date == datetime(2030, 3, 17, 0, 0)

    def test_time_only_lands_on_today(self):
        parsed = parse_date_from_content("9시 30분 스탠드업", today=TODAY)
        assert parsed.content == "스탠드업"
        assert parsed.due_date == datetime(2030, 3, 15, 9, 30)

    def test_morning_twelve_is_midnight(self):
        parsed = parse_date_from_content("오늘 오전 12시 배포", today=TODAY)
        assert parsed.due_date == datetime(2030, 3, 15, 0, 0)

    def test_afternoon_twelve_is_noon(self):
        parsed = parse_date_from_content("오후 12시 점심", today=TODAY)
        assert parsed.due_date == datetime(2030, 3, 15, 12, 0)

    def test_only_first_day_keyword_is_used(self):
        parsed = parse_date_from_content("오늘 말고 내일 청소", today=TODAY)
        assert parsed.due_date == datetime(2030, 3, 15, 0, 0)
        assert parsed.content == "말고 내일 청소"

    def test_keyword_inside_text_collapses_spaces(self):
        parsed = parse_date_from_content("보고서 내일 제출", today=TODAY)
        assert parsed.content == "보고서 제출"
        assert parsed.due_date == datetime(2030, 3, 16, 0, 0)

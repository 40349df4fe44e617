from types import SimpleNamespace

import pytest

from app.utils.validators import (
    sanitize_profile,
    sanitize_text,
    validate_activity,
    validate_date,
    validate_date_range,
    validate_file_upload,
    validate_goal,
    validate_group,
    validate_number,
    validate_password_strength,
    validate_student_profile,
    validate_survey_answers,
    validate_survey_template,
    validate_text,
    validate_url,
)


class TestPrimitives:
    @pytest.mark.parametrize("value", [None, "", "2024-02-29", "1999-12-31"])
    def test_valid_dates(self, value):
        assert validate_date(value)

    @pytest.mark.parametrize(
        "value", ["2023-02-29", "2024-13-01", "24-01-01", "yesterday", "02/30/2023", "01/15/2023"]
    )
    def test_invalid_dates(self, value):
        assert not validate_date(value)

    def test_date_range(self):
        assert validate_date_range("2024-01-01", "2024-01-01")
        assert validate_date_range("2024-01-01", None)
        assert validate_date_range(None, "2023-01-01")
        assert not validate_date_range("2024-02-01", "2024-01-01")

    def test_url(self):
        assert validate_url("")
        assert validate_url("https://github.com/someone")
        assert not validate_url("not a url")
        assert not validate_url("github.com/someone")

    def test_text_bounds(self):
        assert validate_text("", 0, 10)
        assert not validate_text("", 1, 10)
        assert validate_text("abc", 3, 3)
        assert not validate_text("abcd", 0, 3)

    def test_number(self):
        assert validate_number(None, 0, 5)
        assert validate_number("3", 0, 5)
        assert not validate_number(6, 0, 5)
        assert not validate_number(True, 0, 5)
        assert not validate_number("three", 0, 5)

    def test_password_strength_reports_every_rule(self):
        ok, errors = validate_password_strength("short")
        assert not ok
        assert "Password must be at least 8 characters long" in errors
        assert "Password must contain at least one uppercase letter" in errors
        assert "Password must contain at least one digit" in errors

        assert validate_password_strength("Passw0rdOK") == (True, [])


class TestEntityValidators:
    def test_profile_collects_all_errors(self):
        result = validate_student_profile(
            {"year_level": "Fifth", "linkedin_url": "nope", "date_of_birth": "2001-02-30"}
        )
        assert result.errors == [
            "Invalid year level",
            "Invalid date of birth format (YYYY-MM-DD)",
            "Invalid LinkedIn URL",
        ]

    def test_empty_profile_is_valid(self):
        assert validate_student_profile({}).is_valid

    def test_goal(self):
        good = {"title": "Learn SQL", "description": "Finish the course by June", "category": "skill"}
        assert validate_goal(good).is_valid

        result = validate_goal({"title": "ab", "description": "short", "category": "x", "priority": "meh"})
        assert "Title must be 3-255 characters" in result.errors
        assert "Description must be 10-1000 characters" in result.errors
        assert "Invalid category" in result.errors
        assert "Invalid priority" in result.errors

    def test_goal_title_too_long(self):
        goal = {"title": "x" * 256, "description": "Finish the course by June", "category": "skill"}
        assert validate_goal(goal).errors == ["Title must be 3-255 characters"]

        goal["title"] = "x" * 255
        assert validate_goal(goal).is_valid

    def test_activity_date_order(self):
        result = validate_activity(
            {"title": "Chess club", "category": "academic", "start_date": "2024-05-01", "end_date": "2024-01-01"}
        )
        assert result.errors == ["Start date cannot be after end date"]

    def test_activity_hours(self):
        result = validate_activity({"title": "Chess club", "category": "academic", "hours": 10001})
        assert result.errors == ["Hours must be between 0 and 10000"]

    def test_file_upload(self):
        ok = {"file_type": "application/pdf", "file_size": 1024, "file_name": "resume.pdf"}
        assert validate_file_upload(ok).is_valid

        result = validate_file_upload(
            {"file_type": "application/zip", "file_size": 6 * 1024 * 1024, "file_name": "a.zip"}
        )
        assert len(result.errors) == 2

    def test_group_member_limit(self):
        result = validate_group({"name": "Team", "max_size": 2, "member_ids": [1, 2, 3]})
        assert result.errors == ["Group cannot have more than 2 members"]

        assert "Duplicate members" in validate_group({"name": "Team", "member_ids": [1, 1]}).errors

    def test_group_partial_skips_name(self):
        assert validate_group({"status": "completed"}, partial=True).is_valid
        assert not validate_group({"status": "archived"}, partial=True).is_valid

    def test_survey_template_requires_choice_options(self):
        result = validate_survey_template(
            {
                "title": "Interests survey",
                "questions": [
                    {"question_text": "Pick one", "question_type": "multiple_choice", "options": ["A"]},
                ],
            }
        )
        assert result.errors == ["Question 1: choice questions need at least 2 options"]

    def test_survey_template_needs_questions(self):
        assert validate_survey_template({"title": "Empty survey"}).errors == [
            "At least one question is required"
        ]


class TestSurveyAnswers:
    questions = [
        SimpleNamespace(id="q1", question_type="multiple_choice", options=["A", "B"], is_required=True),
        SimpleNamespace(id="q2", question_type="rating_scale", options=None, is_required=False),
        SimpleNamespace(id="q3", question_type="text", options=None, is_required=True),
    ]

    def test_valid_completed(self):
        answers = {"q1": "A", "q2": 4, "q3": "Because"}
        assert validate_survey_answers(self.questions, answers, "completed").is_valid

    def test_required_only_when_completed(self):
        assert validate_survey_answers(self.questions, {"q2": 3}, "in_progress").is_valid

        result = validate_survey_answers(self.questions, {"q2": 3}, "completed")
        assert result.errors == ["Question 1 is required", "Question 3 is required"]

    def test_bad_answers(self):
        result = validate_survey_answers(self.questions, {"q1": "C", "q2": 9, "q9": "x"}, "in_progress")
        assert "Question 1: invalid answer" in result.errors
        assert "Question 2: invalid answer" in result.errors
        assert "Unknown question: q9" in result.errors


class TestSanitizers:
    def test_sanitize_text(self):
        assert sanitize_text("  too   many\tspaces ") == "too many spaces"
        assert sanitize_text(None) is None

    def test_sanitize_profile_keeps_only_present_fields(self):
        cleaned = sanitize_profile({"major": "  Computer   Science ", "github_url": "https://github.com/x"})
        assert cleaned["major"] == "Computer Science"
        assert cleaned["github_url"].startswith("https://github.com/x")
        assert "bio" not in cleaned

    def test_sanitize_profile_drops_unparseable_url(self):
        assert "linkedin_url" not in sanitize_profile({"linkedin_url": "not a url"})

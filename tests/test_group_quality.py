from app.services.group_quality import (
    MemberSnapshot,
    analyze_group_composition,
    analyze_group_quality,
    calculate_group_quality_score,
    calculate_interest_overlap_score,
    score_group,
)


def member(year, completion, skills=(), interests=(), major=None):
    return MemberSnapshot(
        student_profile_id=object(),
        year_level=year,
        major=major,
        profile_completion_percentage=completion,
        skills=[{"name": name, "category": category} for name, category in skills],
        interests=list(interests),
    )


def test_empty_group():
    assert calculate_group_quality_score([]) == 0


def test_weighted_score():
    members = [
        member("Junior", 80, [("Python", "technical"), ("SQL", "technical")]),
        member("Junior", 80, [("Python", "technical"), ("Teamwork", "soft")]),
        member("Senior", 80, [("Design", "technical")]),
        member("Senior", 80, [("Writing", "soft")]),
    ]
    score = score_group(members)
    # 5 unique skills -> 50, 2 of 4 year levels -> 50, completion 80, ideal size -> 100
    assert score.breakdown == {
        "skill_diversity": 50.0,
        "experience_balance": 50.0,
        "profile_completeness": 80.0,
        "group_size": 100.0,
    }
    assert score.quality_score == 66


def test_small_group_penalized_for_size():
    members = [member("Junior", 0), member("Junior", 0)]
    # experience 1/2 -> 50, size 4-2 -> 60
    assert calculate_group_quality_score(members) == 27


def test_interest_overlap():
    members = [
        member("Junior", 0, interests=["Robotics", "Music"]),
        member("Senior", 0, interests=["Robotics", "Chess"]),
    ]
    # Robotics is shared, 3 distinct interests
    assert calculate_interest_overlap_score(members) == 33
    assert calculate_interest_overlap_score([member("Junior", 0)]) == 0


def test_composition():
    members = [
        member("Junior", 60, [("Python", "technical")], ["Robotics"], major="Physics"),
        member("Senior", 90, [("Teamwork", "soft"), ("SQL", "technical")], major="Physics"),
    ]
    analysis = analyze_group_composition(members)
    assert analysis["skill_categories"] == {"technical": 2, "soft": 1}
    assert analysis["year_level_distribution"] == {"Junior": 1, "Senior": 1}
    assert analysis["majors"] == {"Physics": 2}
    assert analysis["average_profile_completion"] == 75
    assert analysis["total_skills"] == 3
    assert analysis["total_interests"] == 1


def test_batch_summary():
    groups = [
        {"members": [1, 2, 3, 4], "quality_score": 85, "analysis": {"skill_categories": {"technical": 3}}},
        {"members": [5, 6, 7], "quality_score": 65, "analysis": {"skill_categories": {"technical": 1, "soft": 2}}},
        {"members": [8, 9], "quality_score": 40},
    ]
    summary = analyze_group_quality(groups)
    assert summary["total_groups"] == 3
    assert summary["average_quality_score"] == 63
    assert summary["average_group_size"] == 3
    assert summary["skill_distribution"] == {"technical": 4, "soft": 2}
    assert summary["quality_distribution"] == {"high": 1, "medium": 1, "low": 1}


def test_batch_summary_empty():
    assert analyze_group_quality([]) == {}

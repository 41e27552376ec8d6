from types import SimpleNamespace

from barbersmart.domain.staff.schedule import can_save, find_schedule_conflicts


def _hours(day, is_open=True, open_time="09:00", close_time="18:00"):
    return SimpleNamespace(
        day_of_week=day, is_open=is_open, open_time=open_time, close_time=close_time, break_start=None, break_end=None
    )


BUSINESS_HOURS = [_hours("monday"), _hours("tuesday"), _hours("sunday", is_open=False)]


def test_schedule_inside_business_hours():
    schedule = {"monday": {"enabled": True, "start": "09:00", "end": "18:00"}}
    conflicts = find_schedule_conflicts(schedule, BUSINESS_HOURS)
    assert conflicts == []
    assert can_save(conflicts)


def test_working_on_closed_day():
    conflicts = find_schedule_conflicts({"sunday": {"enabled": True, "start": "09:00", "end": "12:00"}}, BUSINESS_HOURS)
    assert [c.type for c in conflicts] == ["closed_day"]
    assert not can_save(conflicts)


def test_day_missing_from_business_hours_counts_as_closed():
    conflicts = find_schedule_conflicts({"friday": {"enabled": True, "start": "09:00", "end": "12:00"}}, BUSINESS_HOURS)
    assert conflicts[0].day == "friday"
    assert conflicts[0].type == "closed_day"


def test_start_and_end_outside_hours():
    schedule = {"tuesday": {"is_working": True, "start": "08:00", "end": "19:00"}}
    conflicts = find_schedule_conflicts(schedule, BUSINESS_HOURS)
    assert len(conflicts) == 2
    assert all(c.type == "outside_hours" for c in conflicts)
    assert "08:00" in conflicts[0].message
    assert "19:00" in conflicts[1].message


def test_disabled_days_are_ignored():
    schedule = {"sunday": {"enabled": False, "start": "09:00", "end": "12:00"}}
    assert find_schedule_conflicts(schedule, BUSINESS_HOURS) == []


def test_multi_unit_schedule_checks_only_the_given_unit():
    schedule = {
        "units": {
            "u1": {"monday": {"enabled": True, "start": "07:00", "end": "12:00"}},
            "u2": {"monday": {"enabled": True, "start": "10:00", "end": "12:00"}},
        }
    }
    assert len(find_schedule_conflicts(schedule, BUSINESS_HOURS, unit_id="u1")) == 1
    assert find_schedule_conflicts(schedule, BUSINESS_HOURS, unit_id="u2") == []


def test_empty_schedule():
    assert find_schedule_conflicts(None, BUSINESS_HOURS) == []

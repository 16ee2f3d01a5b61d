from debrief.config.settings import DebriefConfig
from debrief.focus import suggest_focus
from debrief.models.aggregation import HitCount


def hc(name, hit, total):
    return HitCount(diagnosis=name, hit_count=hit, total=total)


def test_weak_cant_miss_message():
    focus = suggest_focus([hc("Aortic Dissection", 1, 4)], [], {})
    assert focus == ["Review Aortic Dissection — missed by 3 of 4 students"]


def test_half_the_class_is_not_weak():
    assert suggest_focus([hc("PE", 2, 4)], [], {}) == []


def test_no_submissions_flags_nothing():
    assert suggest_focus([hc("PE", 0, 0)], [], {}) == []


def test_priority_order():
    focus = suggest_focus(
        [hc("PE", 0, 5)],
        ["C"],
        {"Renal": 2},
    )
    assert focus == [
        "Review PE — missed by 5 of 5 students",
        "No one considered Congenital causes",
        "Students want to discuss Renal",
    ]


def test_cant_miss_exhausts_cap():
    details = [hc(f"Dx{i}", 0, 10) for i in range(4)]
    focus = suggest_focus(details, ["I", "N"], {"ECG": 5})

    assert len(focus) == 3
    assert all(item.startswith("Review Dx") for item in focus)
    assert [item.split()[1] for item in focus] == ["Dx0", "Dx1", "Dx2"]


def test_topic_needs_two_votes():
    assert suggest_focus([], [], {"ECG": 1}) == []


def test_topic_tie_keeps_first_seen():
    assert suggest_focus([], [], {"ECG": 3, "Renal": 3}) == ["Students want to discuss ECG"]


def test_configurable_limits():
    config = DebriefConfig(focus_limit=1, cant_miss_threshold=0.8, topic_vote_min=5)
    assert suggest_focus([hc("PE", 3, 5)], ["E"], {"ECG": 4}, config) == [
        "Review PE — missed by 2 of 5 students"
    ]

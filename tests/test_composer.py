from datetime import date, datetime

from reminders.composer import (
    EVENING_FALLBACK,
    compose_action_error,
    compose_evening,
    compose_j1,
    compose_morning,
    compose_near_deadline,
    compose_overdue,
    compose_urgent,
    compose_weekend,
)
from reminders.models import Profile, Task, WeatherSummary


def _tasks(count: int, deadline: datetime | None = None) -> list[Task]:
    return [Task(id=f"t{i}", title=f"Tâche {i}", deadline=deadline) for i in range(1, count + 1)]


class TestMorning:
    def test_greeting_weather_and_due_tasks(self):
        message = compose_morning(
            Profile(first_name="Camille"),
            WeatherSummary(temperature_c=7.6, outfit="manteau chaud + pull"),
            _tasks(4),
            [],
        )
        assert message.body.splitlines() == [
            "Bonjour Camille,",
            "Météo : 8°C · manteau chaud + pull",
            "Vos démarches du jour :",
            "• Tâche 1",
            "• Tâche 2",
            "• Tâche 3",
            "Bonne journée.",
        ]

    def test_due_tasks_with_overdue_addendum(self):
        message = compose_morning(Profile(), None, _tasks(1), _tasks(2))
        assert message.body.startswith("Bonjour,\nVos démarches du jour :")
        assert "⚠️ 2 tâche(s) en retard" in message.body
        assert "Météo" not in message.body

    def test_overdue_only(self):
        message = compose_morning(Profile(), None, [], _tasks(5))
        assert "⚠️ Vous avez 5 tâche(s) en retard :" in message.body
        assert "• Tâche 3" in message.body
        assert "• Tâche 4" not in message.body

    def test_nothing_planned(self):
        message = compose_morning(Profile(), None, [], [])
        assert message.body == "Bonjour,\nVous n'avez aucune démarche prévue aujourd'hui.\nBonne journée."

    def test_weather_without_outfit(self):
        message = compose_morning(Profile(), WeatherSummary(temperature_c=21.2), [], [])
        assert "Météo : 21°C\n" in message.body


class TestJ1:
    def test_silent_when_empty(self):
        assert compose_j1([]) is None

    def test_single_task_is_named(self):
        assert compose_j1(_tasks(1)).body == "La tâche « Tâche 1 » arrive à échéance demain."

    def test_two_to_three_tasks_are_listed(self):
        assert compose_j1(_tasks(3)).body == (
            "3 tâches arrivent à échéance demain :\n• Tâche 1\n• Tâche 2\n• Tâche 3"
        )

    def test_more_than_three_names_first_and_count(self):
        assert compose_j1(_tasks(4)).body == "4 tâches arrivent à échéance demain, dont « Tâche 1 »."


def test_evening_uses_quote_or_fallback():
    assert compose_evening("Respirez.").body == "Respirez."
    assert compose_evening(None).body == EVENING_FALLBACK


class TestOverdue:
    def test_one_message_per_task_with_day_count(self):
        tasks = [
            Task(id="a", title="Payer la cantine", deadline=datetime(2025, 3, 1, 18, 0)),
            Task(id="b", title="Rappeler Paul", deadline=datetime(2025, 2, 20)),
        ]
        messages = compose_overdue(tasks, date(2025, 3, 2))
        assert [m.task_id for m in messages] == ["a", "b"]
        assert messages[0].body == "« Payer la cantine » est en retard de 1 jour."
        assert messages[1].body == "« Rappeler Paul » est en retard de 10 jours."

    def test_seven_overdue_gives_five_plus_summary(self):
        messages = compose_overdue(_tasks(7, deadline=datetime(2025, 2, 1)), date(2025, 3, 2))
        assert len(messages) == 6
        assert all(m.task_id for m in messages[:5])
        assert messages[5].task_id is None
        assert messages[5].body == "2 autres tâches en retard."

    def test_six_overdue_summary_is_singular(self):
        messages = compose_overdue(_tasks(6, deadline=datetime(2025, 2, 1)), date(2025, 3, 2))
        assert messages[-1].body == "1 autre tâche en retard."


def test_weekend_digest():
    assert compose_weekend([]) is None
    assert compose_weekend(_tasks(2)).body == "• Tâche 1\n• Tâche 2"


def test_urgent_mentions_deadline():
    task = Task(id="t1", title="Attestation assurance", deadline=datetime(2025, 3, 3))
    message = compose_urgent(task)
    assert message.body == "Attestation assurance · Deadline 3 mars 2025"
    assert message.task_id == "t1"


def test_near_deadline_wording():
    now = datetime(2025, 3, 2, 10, 0)
    task = Task(id="t1", title="Photo de classe", deadline=datetime(2025, 3, 4))
    assert compose_near_deadline(task, now).body == "« Photo de classe » arrive à échéance dans 2 jours."
    task.deadline = datetime(2025, 3, 3)
    assert compose_near_deadline(task, now).body == "« Photo de classe » arrive à échéance demain."


def test_action_error_keeps_task_id():
    message = compose_action_error("Impossible de supprimer la tâche : API error: 500", "t1")

    assert message.title == "Action impossible"
    assert message.task_id == "t1"

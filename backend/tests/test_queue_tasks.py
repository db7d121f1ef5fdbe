from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone

from apps.campaigns.models import Domain
from apps.common.enums import DomainStatus
from apps.queue.tasks import reset_stuck_domains_task


def age(domain, minutes):
    Domain.objects.filter(id=domain.id).update(updated_at=timezone.now() - timedelta(minutes=minutes))


@pytest.mark.django_db
class TestStuckDomainRecovery:
    def test_task_resets_only_old_claims(self, make_domain):
        old = make_domain("https://old.test", status=DomainStatus.PROCESSING)
        fresh = make_domain("https://fresh.test", status=DomainStatus.PROCESSING)
        age(old, 30)

        result = reset_stuck_domains_task(threshold_minutes=15)

        assert result == {"reset": 1, "threshold_minutes": 15}
        old.refresh_from_db()
        fresh.refresh_from_db()
        assert old.status == DomainStatus.PENDING
        assert "stuck" in old.error_message.lower()
        assert fresh.status == DomainStatus.PROCESSING

    def test_finished_domains_are_left_alone(self, make_domain):
        done = make_domain("https://done.test", status=DomainStatus.COMPLETED)
        age(done, 120)

        assert reset_stuck_domains_task()["reset"] == 0

    def test_management_command(self, make_domain):
        stuck = make_domain("https://stuck.test", status=DomainStatus.PROCESSING)
        age(stuck, 10)
        out = StringIO()

        call_command("reset_stuck_domains", minutes=5, stdout=out)

        assert "Reset 1 stuck domain(s)" in out.getvalue()
        stuck.refresh_from_db()
        assert stuck.status == DomainStatus.PENDING

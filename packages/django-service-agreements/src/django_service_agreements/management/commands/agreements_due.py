"""Management command listing agreements that need attention."""

from datetime import date

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from django_service_agreements import lifecycle
from django_service_agreements.choices import AgreementStatus
from django_service_agreements.formatting import format_date
from django_service_agreements.models import AgreementDisplaySettings, ServiceAgreement


class Command(BaseCommand):
    help = "List service agreements that are expired, due for renewal, or about to be invoiced"

    def add_arguments(self, parser):
        parser.add_argument(
            "--as-of",
            type=str,
            help="Reference date (YYYY-MM-DD); defaults to today",
        )
        parser.add_argument(
            "--status",
            type=str,
            choices=AgreementStatus.values,
            help="Only agreements with this stored status",
        )

    def handle(self, *args, **options):
        if options.get("as_of"):
            try:
                as_of = date.fromisoformat(options["as_of"])
            except ValueError:
                raise CommandError(f"Invalid --as-of date: {options['as_of']}")
        else:
            as_of = timezone.localdate()

        agreements = ServiceAgreement.objects.all().order_by("renewal_date", "pk")
        if options.get("status"):
            agreements = agreements.filter(status=options["status"])

        display = AgreementDisplaySettings.get_instance()

        self.stdout.write(self.style.NOTICE(f"Agreements needing attention as of {format_date(as_of, display)}"))

        count = 0
        for agreement in agreements:
            notes = self._notes(agreement, as_of, display)
            if not notes:
                continue
            count += 1
            self.stdout.write(f"  #{agreement.pk} {agreement.title}: {'; '.join(notes)}")

        if count:
            self.stdout.write(self.style.WARNING(f"{count} agreement(s) need attention"))
        else:
            self.stdout.write(self.style.SUCCESS("No agreements need attention"))

    def _notes(self, agreement, as_of, display) -> list[str]:
        classification = lifecycle.classify(agreement, as_of)
        notes = []

        if classification.is_expired:
            notes.append(f"expired {format_date(agreement.end_date, display)}")

        renewal = lifecycle.renewal_warning(agreement, as_of)
        if renewal == lifecycle.OVERDUE:
            notes.append(f"renewal overdue since {format_date(agreement.renewal_date, display)}")
        elif classification.is_pending_renewal:
            notes.append(f"renewal due {format_date(agreement.renewal_date, display)}")
        elif renewal == lifecycle.SOON:
            days = lifecycle.days_until(agreement.renewal_date, as_of)
            notes.append(f"renewal in {days} days")

        if lifecycle.invoice_warning(agreement, as_of) == lifecycle.SOON:
            days = lifecycle.days_until(classification.next_invoice_date, as_of)
            notes.append(
                f"invoice {format_date(classification.next_invoice_date, display)} ({days} days)"
            )

        return notes

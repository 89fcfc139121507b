"""Tests for NotificationDispatcher fan-out and failure isolation."""

import pytest

from dispatch.application.use_cases.dispatch_notification import NotificationDispatcher
from dispatch.domain.entities.notification import NotificationData, NotificationMessage, Recipient
from dispatch.domain.value_objects.enums import DeliveryStatus, Locale, NotificationTemplate
from fakes import FakeMailTransport, RecordingRenderer


def _message(*recipients: Recipient) -> NotificationMessage:
    return NotificationMessage(
        template=NotificationTemplate.SLA_TIMEOUT,
        data=NotificationData(request_number="REQ-20260301-0001", partner_name="Acme Towing"),
        recipients=list(recipients),
    )


@pytest.mark.asyncio
async def test_middle_recipient_failure_is_isolated():
    transport = FakeMailTransport(undeliverable={"two@ops.test"})
    dispatcher = NotificationDispatcher(RecordingRenderer(), transport)

    report = await dispatcher.dispatch(
        _message(Recipient("one@ops.test"), Recipient("two@ops.test"), Recipient("three@ops.test"))
    )

    assert report.delivered == ["one@ops.test", "three@ops.test"]
    assert report.failed == ["two@ops.test"]
    assert report.results[1].error == "mailbox unavailable"
    assert not report.success


@pytest.mark.asyncio
async def test_transport_exception_becomes_failed_result():
    transport = FakeMailTransport(raising={"one@ops.test"})
    dispatcher = NotificationDispatcher(RecordingRenderer(), transport)

    report = await dispatcher.dispatch(_message(Recipient("one@ops.test"), Recipient("two@ops.test")))

    assert report.failed == ["one@ops.test"]
    assert "smtp relay refused" in report.results[0].error
    assert report.delivered == ["two@ops.test"]


@pytest.mark.asyncio
async def test_renderer_exception_becomes_failed_result():
    class Broken(RecordingRenderer):
        def render(self, template, data, locale):
            raise KeyError("missing label")

    report = await NotificationDispatcher(Broken(), FakeMailTransport()).dispatch(
        _message(Recipient("one@ops.test"))
    )
    assert report.results[0].status == DeliveryStatus.FAILED


@pytest.mark.asyncio
async def test_placeholder_and_blank_addresses_are_skipped():
    transport = FakeMailTransport()
    report = await NotificationDispatcher(RecordingRenderer(), transport).dispatch(
        _message(
            Recipient("walkin@system.local", Locale.EN, is_placeholder=True, category="customer"),
            Recipient("   "),
            Recipient("one@ops.test"),
        )
    )
    assert report.skipped == ["walkin@system.local", ""]
    assert transport.sent == [("one@ops.test", "[en+ar] sla_timeout REQ-20260301-0001")]
    assert report.success


@pytest.mark.asyncio
async def test_renders_once_per_locale():
    renderer = RecordingRenderer()
    await NotificationDispatcher(renderer, FakeMailTransport()).dispatch(
        _message(
            Recipient("a@ops.test"),
            Recipient("b@ops.test"),
            Recipient("c@partner.test", Locale.AR),
            Recipient("d@partner.test", Locale.AR),
        )
    )
    assert [locale for _, locale in renderer.calls] == [None, Locale.AR]


@pytest.mark.asyncio
async def test_no_recipients_yields_empty_successful_report():
    report = await NotificationDispatcher(RecordingRenderer(), FakeMailTransport()).dispatch(_message())
    assert report.results == []
    assert report.success

"""Bilingual (English / Arabic) notification renderer. Implements TemplateRenderer."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape

from dispatch.application.ports.template_renderer import TemplateRenderer
from dispatch.domain.entities.notification import NotificationData, RenderedMessage
from dispatch.domain.value_objects.enums import Locale, NotificationTemplate

STATUS_LABELS: dict[Locale, dict[str, str]] = {
    Locale.EN: {
        "submitted": "Submitted",
        "assigned": "Assigned",
        "confirmed": "Confirmed",
        "in_progress": "In Progress",
        "completed": "Completed",
        "closed": "Closed",
        "rejected": "Rejected",
        "unassigned": "Unassigned",
    },
    Locale.AR: {
        "submitted": "مقدم",
        "assigned": "معين",
        "confirmed": "مؤكد",
        "in_progress": "قيد التنفيذ",
        "completed": "مكتمل",
        "closed": "مغلق",
        "rejected": "مرفوض",
        "unassigned": "غير معين",
    },
}

LABELS: dict[Locale, dict[str, str]] = {
    Locale.EN: {
        "request_number": "Request Number",
        "partner": "Partner",
        "branch": "Branch",
        "service": "Service",
        "category": "Category",
        "customer": "Customer",
        "location": "Location",
        "status": "New Status",
        "notes": "Notes",
        "reason": "Rejection Reason",
    },
    Locale.AR: {
        "request_number": "رقم الطلب",
        "partner": "الشريك",
        "branch": "الفرع",
        "service": "الخدمة",
        "category": "الفئة",
        "customer": "العميل",
        "location": "الموقع",
        "status": "الحالة الجديدة",
        "notes": "ملاحظات",
        "reason": "سبب الرفض",
    },
}


@dataclass(frozen=True)
class _Content:
    subject: str
    intro: str
    fields: tuple[str, ...]
    closing: str = ""


def _content(template: NotificationTemplate, d: NotificationData, locale: Locale) -> _Content:
    n = d.request_number
    status = STATUS_LABELS[locale].get(d.status, d.status)
    minutes = d.timeout_minutes
    ar = locale == Locale.AR

    if template == NotificationTemplate.ASSIGNED:
        if ar:
            closing = f"⏰ مهم: يرجى قبول أو رفض الطلب خلال {minutes} دقيقة." if minutes else ""
            return _Content(
                f"طلب جديد تم تعيينه - {n}",
                "تم تعيين طلب خدمة جديد لك.",
                ("request_number", "branch", "service", "category", "customer", "location"),
                closing,
            )
        closing = (
            f"⏰ Important: Please accept or reject this request within {minutes} minutes."
            if minutes else "Log in to your dashboard to respond to this request."
        )
        return _Content(
            f"New Request Assigned - {n}",
            "A new service request has been assigned to you.",
            ("request_number", "branch", "service", "category", "customer", "location"),
            closing,
        )

    if template == NotificationTemplate.ACCEPTED:
        if ar:
            return _Content(
                f"تم قبول الطلب - {n}",
                f"قام {d.partner_name} بقبول الطلب.",
                ("request_number", "partner", "branch", "customer", "service"),
            )
        return _Content(
            f"Request Accepted - {n}",
            f"{d.partner_name} has accepted the request.",
            ("request_number", "partner", "branch", "customer", "service"),
        )

    if template == NotificationTemplate.CONFIRMED:
        if ar:
            return _Content(
                f"تم تأكيد طلبك - {n}",
                "تم تأكيد طلب الخدمة الخاص بك.",
                ("request_number", "branch", "service", "location"),
                "سيتم التواصل معك قريباً لتنسيق الخدمة.",
            )
        return _Content(
            f"Your Request is Confirmed - {n}",
            "Your service request has been confirmed.",
            ("request_number", "branch", "service", "location"),
            "You will be contacted soon to coordinate the service.",
        )

    if template == NotificationTemplate.REJECTED:
        if ar:
            return _Content(
                f"تم رفض الطلب - {n}",
                f"قام {d.partner_name} برفض الطلب.",
                ("request_number", "partner", "branch", "customer", "service", "reason"),
                "يرجى إعادة تعيين الطلب لشريك آخر.",
            )
        return _Content(
            f"Request Rejected - {n}",
            f"{d.partner_name} has rejected the request.",
            ("request_number", "partner", "branch", "customer", "service", "reason"),
            "Please reassign the request to another partner.",
        )

    if template == NotificationTemplate.CLOSED:
        if ar:
            return _Content(
                f"تم إغلاق الطلب - {n}",
                "تم إغلاق طلب الخدمة الخاص بك. شكراً لاستخدامك خدماتنا.",
                ("request_number", "service", "notes"),
            )
        return _Content(
            f"Request Closed - {n}",
            "Your service request has been closed. Thank you for using our service.",
            ("request_number", "service", "notes"),
        )

    if template == NotificationTemplate.SLA_TIMEOUT:
        if ar:
            window = f"المدة المحددة {minutes} دقيقة" if minutes else "المدة المحددة في معايير الخدمة"
            return _Content(
                f"⏰ تنبيه انتهاء وقت الاستجابة - طلب {n}",
                f"تم إلغاء تعيين الطلب {n} تلقائياً. الشريك {d.partner_name} لم يستجب خلال {window}.",
                ("request_number", "partner", "branch", "customer", "service"),
                "الطلب الآن في قائمة الطلبات غير المعينة. يرجى إعادة تعيينه لشريك آخر متاح.",
            )
        window = f"{minutes} minutes" if minutes else "configured SLA"
        return _Content(
            f"⏰ SLA Timeout Alert - Request {n}",
            f"Request {n} has been automatically unassigned. "
            f"Partner {d.partner_name} did not respond within the {window} deadline.",
            ("request_number", "partner", "branch", "customer", "service"),
            "The request is now back in the unassigned queue. "
            "Please reassign it to another available partner.",
        )

    # in_progress, completed and the generic status change share one layout.
    if ar:
        return _Content(
            f"تحديث حالة الطلب - {n}",
            f"تم تحديث حالة طلب الخدمة. الحالة الجديدة: {status}",
            ("request_number", "status", "branch", "service", "notes"),
            "" if d.notes else "سجل الدخول لعرض تفاصيل الطلب الكاملة.",
        )
    return _Content(
        f"Request Status Update - {n}",
        f"The service request status has been updated to: {status}",
        ("request_number", "status", "branch", "service", "notes"),
        "" if d.notes else "Log in to view full request details.",
    )


def _field_values(d: NotificationData, locale: Locale) -> dict[str, str]:
    return {
        "request_number": d.request_number,
        "partner": d.partner_name,
        "branch": d.branch_name,
        "service": d.service_name,
        "category": d.category_name,
        "customer": d.customer_name,
        "location": d.branch_address,
        "status": STATUS_LABELS[locale].get(d.status, d.status),
        "notes": d.notes or "",
        "reason": d.rejection_reason
        or ("لم يتم تحديد السبب" if locale == Locale.AR else "No reason provided"),
    }


class BilingualRenderer(TemplateRenderer):
    """Plain f-string templates; every interpolated value is HTML-escaped."""

    def render(
        self,
        template: NotificationTemplate,
        data: NotificationData,
        locale: Locale | None,
    ) -> RenderedMessage:
        if locale is not None:
            return self._render_one(template, data, locale)

        en = self._render_one(template, data, Locale.EN)
        ar = self._render_one(template, data, Locale.AR)
        return RenderedMessage(
            subject=f"{en.subject} | {ar.subject}",
            html_body=f"{en.html_body}\n<hr>\n{ar.html_body}",
            text_body=f"{en.text_body}\n\n---\n\n{ar.text_body}",
        )

    def _render_one(
        self, template: NotificationTemplate, data: NotificationData, locale: Locale
    ) -> RenderedMessage:
        content = _content(template, data, locale)
        values = _field_values(data, locale)
        labels = LABELS[locale]
        rows = [(labels[name], values[name]) for name in content.fields if values[name]]

        text_lines = [content.intro, ""]
        text_lines += [f"{label}: {value}" for label, value in rows]
        if content.closing:
            text_lines += ["", content.closing]

        direction = "rtl" if locale == Locale.AR else "ltr"
        align = "right" if locale == Locale.AR else "left"
        html_rows = "".join(
            f"<tr><td><strong>{escape(label)}</strong></td><td>{escape(value)}</td></tr>"
            for label, value in rows
        )
        closing_html = f"<p>{escape(content.closing)}</p>" if content.closing else ""
        html_body = (
            f'<div dir="{direction}" style="font-family: Arial, sans-serif; '
            f'direction: {direction}; text-align: {align};">'
            f"<h2>{escape(content.subject)}</h2>"
            f"<p>{escape(content.intro)}</p>"
            f"<table>{html_rows}</table>"
            f"{closing_html}"
            "</div>"
        )
        return RenderedMessage(
            subject=content.subject,
            html_body=html_body,
            text_body="\n".join(text_lines),
        )

import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Any, Optional
import logging

logger = logging.getLogger(__name__)


class EmailService:
    """Email service for sending transactional emails via Gmail SMTP."""

    def __init__(
        self,
        smtp_host: str = "smtp.gmail.com",
        smtp_port: int = 587,
        smtp_user: str = "",
        smtp_password: str = "",
        from_email: str = "",
        from_name: str = "Courier Bookings"
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.from_email = from_email or smtp_user
        self.from_name = from_name

    def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> bool:
        """
        Send an email using Gmail SMTP.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML body of the email
            text_content: Plain text body (optional fallback)

        Returns:
            True if email sent successfully, False otherwise
        """
        if not self.smtp_user or not self.smtp_password:
            logger.warning("Email not configured. SMTP credentials missing.")
            return False

        try:
            msg = MIMEMultipart('alternative')
            msg['Subject'] = subject
            msg['From'] = f"{self.from_name} <{self.from_email}>"
            msg['To'] = to_email

            if text_content:
                msg.attach(MIMEText(text_content, 'plain'))
            msg.attach(MIMEText(html_content, 'html'))

            # Connect and send with timeout
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=10) as server:
                server.starttls()
                server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())

            logger.info(f"Email sent successfully to {to_email}")
            return True

        except smtplib.SMTPAuthenticationError:
            logger.error("SMTP Authentication failed. Check email credentials.")
            return False
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {e}")
            return False
        except TimeoutError:
            logger.error("SMTP connection timed out")
            return False
        except OSError as e:
            logger.error(f"Network error sending email: {e}")
            return False

    def send_booking_confirmation_email(
        self,
        to_email: str,
        recipient_name: str,
        booking: dict[str, Any],
    ) -> bool:
        """
        Send booking confirmation with the consignment number and a summary.

        Args:
            to_email: Sender or recipient email
            recipient_name: Name used in the greeting
            booking: Booking snapshot with consignmentNumber, origin, destination,
                shipment, charges (camelCase keys, as stored)

        Returns:
            True if sent successfully
        """
        consignment = booking.get("consignmentNumber")
        origin = booking.get("origin") or {}
        destination = booking.get("destination") or {}
        shipment = booking.get("shipment") or {}
        charges = booking.get("charges") or {}

        subject = f"Booking Confirmed - Consignment #{consignment}"

        def address_block(address: dict[str, Any]) -> str:
            parts = [
                address.get("name", ""),
                address.get("flatBuilding", ""),
                address.get("locality", ""),
                f"{address.get('area', '')}, {address.get('city', '')}",
                f"{address.get('state', '')} - {address.get('pincode', '')}",
                address.get("mobileNumber", ""),
            ]
            return "<br>".join(p for p in parts if p and p.strip(", -"))

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="utf-8">
            <meta name="viewport" content="width=device-width, initial-scale=1.0">
        </head>
        <body style="font-family: 'Segoe UI', Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; background: #f5f5f5;">
            <div style="background: linear-gradient(135deg, #406ab9 0%, #4ec0f7 100%); padding: 30px; text-align: center; border-radius: 10px 10px 0 0;">
                <h1 style="color: white; margin: 0; font-size: 24px;">Booking Confirmed</h1>
                <p style="color: #e6f4ff; margin: 10px 0 0 0;">Consignment #{consignment}</p>
            </div>
            <div style="background: white; padding: 30px; border-radius: 0 0 10px 10px;">
                <p>Hello {recipient_name or 'Customer'},</p>
                <p>Your shipment has been booked. Please quote the consignment number in any correspondence.</p>

                <table style="width: 100%; border-collapse: collapse; margin: 20px 0;">
                    <tr>
                        <td style="padding: 12px; vertical-align: top; width: 50%;">
                            <strong>From</strong><br>{address_block(origin)}
                        </td>
                        <td style="padding: 12px; vertical-align: top; width: 50%;">
                            <strong>To</strong><br>{address_block(destination)}
                        </td>
                    </tr>
                </table>

                <table style="width: 100%; border-collapse: collapse;">
                    <tr>
                        <td style="padding: 8px; border-bottom: 1px solid #eee;">Mode / Service</td>
                        <td style="padding: 8px; border-bottom: 1px solid #eee; text-align: right;">{shipment.get('mode', '')} / {shipment.get('services', '')}</td>
                    </tr>
                    <tr>
                        <td style="padding: 8px; border-bottom: 1px solid #eee;">Chargeable Weight</td>
                        <td style="padding: 8px; border-bottom: 1px solid #eee; text-align: right;">{shipment.get('chargeableWeight', 0)} kg</td>
                    </tr>
                    <tr>
                        <td style="padding: 8px;"><strong>Grand Total</strong></td>
                        <td style="padding: 8px; text-align: right;"><strong>&#8377;{charges.get('grandTotal', '0.00')}</strong></td>
                    </tr>
                </table>
            </div>
            <div style="padding: 20px; text-align: center; color: #666; font-size: 12px;">
                <p>This is an automated message. Please do not reply.</p>
            </div>
        </body>
        </html>
        """

        text_content = f"""
        Booking Confirmed - Consignment #{consignment}

        Hello {recipient_name or 'Customer'},

        From: {origin.get('name', '')}, {origin.get('city', '')} {origin.get('pincode', '')}
        To: {destination.get('name', '')}, {destination.get('city', '')} {destination.get('pincode', '')}
        Grand Total: Rs. {charges.get('grandTotal', '0.00')}
        """

        return self.send_email(to_email, subject, html_content, text_content)

    def send_pricing_approval_email(
        self,
        to_email: str,
        client_name: str,
        pricing_name: str,
        approval_url: str,
    ) -> bool:
        """Send a corporate rate card to the client with approve/reject link."""
        subject = f"Pricing for your review - {pricing_name}"

        html_content = f"""
        <!DOCTYPE html>
        <html>
        <head>
            <style>
                body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
                .container {{ max-width: 600px; margin: 0 auto; padding: 20px; }}
                .header {{ background: #406ab9; color: white; padding: 20px; text-align: center; }}
                .content {{ padding: 30px; background: #f9f9f9; }}
                .button {{ display: inline-block; padding: 12px 30px; background: #406ab9; color: white; text-decoration: none; border-radius: 5px; margin: 20px 0; }}
                .footer {{ padding: 20px; text-align: center; color: #666; font-size: 12px; }}
            </style>
        </head>
        <body>
            <div class="container">
                <div class="header">
                    <h1>Pricing Approval</h1>
                </div>
                <div class="content">
                    <p>Hello {client_name or 'there'},</p>
                    <p>The rate card <strong>{pricing_name}</strong> has been prepared for you.
                    Please review it and approve or reject it using the link below.</p>

                    <p style="text-align: center;">
                        <a href="{approval_url}" class="button">Review Pricing</a>
                    </p>

                    <p>Or copy and paste this link in your browser:</p>
                    <p style="word-break: break-all; color: #406ab9;">{approval_url}</p>
                </div>
                <div class="footer">
                    <p>This is an automated message. Please do not reply.</p>
                </div>
            </div>
        </body>
        </html>
        """

        text_content = f"""
        Pricing Approval

        Hello {client_name or 'there'},

        The rate card "{pricing_name}" has been prepared for you.
        Review it here: {approval_url}
        """

        return self.send_email(to_email, subject, html_content, text_content)

    def send_test_email(self, to_email: str) -> bool:
        """Check the SMTP configuration end to end."""
        return self.send_email(
            to_email,
            "Test email - Courier Bookings",
            "<p>Your email configuration is working.</p>",
            "Your email configuration is working.",
        )


def get_email_service() -> EmailService:
    """Get configured email service instance."""
    from app.config import settings

    return EmailService(
        smtp_host=settings.SMTP_HOST,
        smtp_port=settings.SMTP_PORT,
        smtp_user=settings.SMTP_USER,
        smtp_password=settings.SMTP_PASSWORD,
        from_email=settings.SMTP_FROM_EMAIL,
        from_name=settings.SMTP_FROM_NAME
    )


# ==================== NOTIFICATION HELPER ====================

def send_booking_notifications(booking: dict[str, Any]) -> int:
    """
    Send booking confirmation to the sender, and to the recipient when their
    email differs. Runs as a background task; never raises.

    Returns:
        Number of emails sent
    """
    email_service = get_email_service()
    origin = booking.get("origin") or {}
    destination = booking.get("destination") or {}

    sent = 0
    recipients = []
    if origin.get("email"):
        recipients.append((origin["email"], origin.get("name", "")))
    if destination.get("email") and destination["email"].lower() != (origin.get("email") or "").lower():
        recipients.append((destination["email"], destination.get("name", "")))

    for to_email, name in recipients:
        if email_service.send_booking_confirmation_email(to_email, name, booking):
            sent += 1

    if not recipients:
        logger.info(f"No email address on booking {booking.get('consignmentNumber')}, confirmation skipped")
    return sent

"""
Booking Proxy Stack

Deploys the Cloudbeds booking proxy API. Provider slots and proxy settings are
read from CDK context (see ``cdk.json``):

Example usage:
  cdk deploy --context parameter_path=/cloudbeds_proxy/providers
  cdk deploy --context response_language=es --context allowed_origin=https://hotel.example
"""

from ..constructs.booking_proxy.construct import BookingProxyConstruct
from ..constructs.booking_proxy.settings import ProxySettings
from aws_cdk import CfnOutput, Stack
from constructs import Construct


class BookingProxyStack(Stack):
    """CDK Stack containing the Cloudbeds booking proxy API."""

    def __init__(self, scope: Construct, construct_id: str, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        settings = ProxySettings.from_context(self.node.try_get_context)

        self.booking_proxy = BookingProxyConstruct(
            self,
            "BookingProxy",
            settings=settings,
            stage_name="prod",
        )

        CfnOutput(
            self,
            "BookingProxyApiUrl",
            value=self.booking_proxy.api_url,
            description="Base URL of the booking proxy routes (/api)",
            export_name=f"{self.stack_name}-BookingProxyApiUrl",
        )

        CfnOutput(
            self,
            "BookingProxyApiId",
            value=self.booking_proxy.api_id,
            description="API ID of the booking proxy API",
            export_name=f"{self.stack_name}-BookingProxyApiId",
        )

        CfnOutput(
            self,
            "ConfiguredProviders",
            value=", ".join(str(p.get("name") or f"PROVIDER {p.get('slot')}") for p in settings.providers) or "None",
            description="Provider slots configured from context",
        )

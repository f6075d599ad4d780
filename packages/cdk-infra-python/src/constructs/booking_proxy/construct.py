"""
Booking Proxy Construct

This construct creates the Cloudbeds booking proxy used by the hotel chat
assistant:
- One Lambda layer with the shared ``common`` package (stay rules, Cloudbeds
  client, provider registry, response helpers)
- One Lambda function per chat tool
- A REST API exposing each function under /api/<route>

Routes:
- /api/get-reservation - Stay verdict (valid, minimum nights, reason)
- /api/get-rates-lite - Stay total and minimum stay
- /api/get-reservation-summary - Chosen rate plan with nightly detail
- /api/get-price - Total price for a room type
- /api/build-booking-link - Booking-engine links across providers
- /api/check-availability - Property-level vacancy
- /api/can-book - Room-type bookability for a party
- /api/get-availability - Raw available room types
- /api/get-reservations - Reservation listing
- /api/reserve - Reservation creation
"""

import os
from ..shared.lambda_execution_role import LambdaExecutionRoleConstruct
from .settings import HANDLERS, ProxySettings
from aws_cdk import Duration, RemovalPolicy, Stack, aws_apigateway as apigateway, aws_logs as logs
from aws_cdk.aws_lambda import Runtime
from aws_cdk.aws_lambda_python_alpha import PythonFunction, PythonLayerVersion
from cdk_nag import NagSuppressions
from constructs import Construct


class BookingProxyConstruct(Construct):
    """
    Construct for the Cloudbeds booking proxy API.

    Creates the common layer, one Lambda function per handler and the API
    Gateway REST API routing to them.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        settings: ProxySettings,
        api_name: str = "Cloudbeds Booking Proxy API",
        api_description: str = "Booking proxy between the hotel chat assistant and Cloudbeds",
        stage_name: str = "prod",
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.settings = settings

        # Execution role (logs, and provider parameters when configured)
        self.execution_role = LambdaExecutionRoleConstruct(
            self, "ExecutionRole", parameter_path=settings.parameter_path or None
        )

        self._create_lambda_functions()
        self._create_api_gateway(api_name, api_description, stage_name)

    def _create_lambda_functions(self) -> None:
        """Create the common layer and one Lambda function per handler."""

        functions_dir = os.path.join(os.path.dirname(__file__), "lambda_functions")

        self.common_layer = PythonLayerVersion(
            self,
            "CommonLayer",
            entry=os.path.join(functions_dir, "common_layer"),
            description="Stay rules, Cloudbeds client and provider registry for the booking proxy",
            layer_version_name="booking-proxy-common",
            compatible_runtimes=[Runtime.PYTHON_3_13],
        )

        environment_vars = self.settings.environment()

        self.functions: dict[str, PythonFunction] = {}
        for directory, route, _ in HANDLERS:
            construct_name = "".join(part.title() for part in directory.split("_"))
            self.functions[directory] = PythonFunction(
                self,
                f"{construct_name}Function",
                runtime=Runtime.PYTHON_3_13,
                entry=os.path.join(functions_dir, directory),
                index="app.py",
                handler="handler",
                layers=[self.common_layer],
                role=self.execution_role.role,
                timeout=Duration.seconds(self.settings.function_timeout),
                memory_size=256,
                environment=environment_vars,
                description=f"Booking proxy handler for /api/{route}",
            )

    def _create_api_gateway(self, api_name: str, api_description: str, stage_name: str) -> None:
        """Create API Gateway with access logging enabled."""

        self.access_log_group = logs.LogGroup(
            self,
            "ApiAccessLogs",
            log_group_name=f"/aws/apigateway/{api_name.replace(' ', '-').lower()}",
            retention=logs.RetentionDays.ONE_MONTH,
            removal_policy=RemovalPolicy.DESTROY,
        )

        allowed_origins = (
            apigateway.Cors.ALL_ORIGINS if self.settings.allowed_origin == "*" else [self.settings.allowed_origin]
        )

        self.api = apigateway.RestApi(
            self,
            "BookingProxyApi",
            rest_api_name=api_name,
            description=api_description,
            cloud_watch_role=True,
            default_cors_preflight_options=apigateway.CorsOptions(
                allow_origins=allowed_origins,
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["Content-Type", "Authorization", "X-Chatbase-Token"],
            ),
            deploy_options=apigateway.StageOptions(
                stage_name=stage_name,
                throttling_rate_limit=50,
                throttling_burst_limit=100,
                tracing_enabled=True,
                metrics_enabled=True,
                access_log_destination=apigateway.LogGroupLogDestination(self.access_log_group),
                access_log_format=apigateway.AccessLogFormat.clf(),
            ),
        )

        NagSuppressions.add_resource_suppressions_by_path(
            Stack.of(self),
            f"{self.api.node.path}/CloudWatchRole/Resource",
            [
                {
                    "id": "AwsSolutions-IAM4",
                    "reason": "API Gateway CloudWatch role uses AWS managed policy AmazonAPIGatewayPushToCloudWatchLogs which is the recommended approach for API Gateway logging.",
                    "appliesTo": [
                        "Policy::arn:<AWS::Partition>:iam::aws:policy/service-role/AmazonAPIGatewayPushToCloudWatchLogs"
                    ],
                }
            ],
        )

        # /api/<route>
        api_resource = self.api.root.add_resource("api")
        for directory, route, methods in HANDLERS:
            resource = api_resource.add_resource(route)
            integration = apigateway.LambdaIntegration(self.functions[directory], proxy=True)
            for method in methods:
                resource.add_method(method, integration)

        NagSuppressions.add_resource_suppressions(
            self.api,
            [
                {
                    "id": "AwsSolutions-APIG2",
                    "reason": "Requests are validated inside each Lambda function, which returns chat-tool friendly messages.",
                },
                {
                    "id": "AwsSolutions-APIG4",
                    "reason": "The chat assistant calls these tools anonymously; no end-user identity is available.",
                },
                {
                    "id": "AwsSolutions-COG4",
                    "reason": "No Cognito user pool is involved; callers are chat-tool integrations.",
                },
                {
                    "id": "AwsSolutions-APIG3",
                    "reason": "WAF is not attached to this stage; throttling limits are set on the stage.",
                },
            ],
            apply_to_children=True,
        )

        self.api_url = self.api.url + "api"
        self.api_id = self.api.rest_api_id

"""
Shared Lambda Execution Role Construct

Creates the execution role used by the booking proxy functions: CloudWatch
Logs access through a custom managed policy (instead of the AWS managed
AWSLambdaBasicExecutionRole) and, when provider credentials live in SSM
Parameter Store, read access to that parameter path.
"""

from aws_cdk import Stack, aws_iam as iam
from cdk_nag import NagSuppressions
from constructs import Construct


class LambdaExecutionRoleConstruct(Construct):
    """
    Execution role for the booking proxy Lambda functions.

    Args:
        parameter_path: SSM path holding provider credentials, e.g.
            ``/cloudbeds_proxy/providers``. No SSM access is granted when omitted.
    """

    def __init__(self, scope: Construct, construct_id: str, parameter_path: str | None = None, **kwargs) -> None:
        super().__init__(scope, construct_id, **kwargs)

        stack = Stack.of(self)
        statements = [
            iam.PolicyStatement(
                effect=iam.Effect.ALLOW,
                actions=["logs:CreateLogGroup", "logs:CreateLogStream", "logs:PutLogEvents"],
                resources=[f"arn:aws:logs:{stack.region}:{stack.account}:*"],
            )
        ]

        self.parameter_path = parameter_path.rstrip("/") if parameter_path else None
        if self.parameter_path:
            statements.append(
                iam.PolicyStatement(
                    effect=iam.Effect.ALLOW,
                    actions=["ssm:GetParametersByPath"],
                    resources=[
                        f"arn:aws:ssm:{stack.region}:{stack.account}:parameter{self.parameter_path}",
                        f"arn:aws:ssm:{stack.region}:{stack.account}:parameter{self.parameter_path}/*",
                    ],
                )
            )

        self.lambda_execution_policy = iam.ManagedPolicy(
            self,
            "BookingProxyExecutionPolicy",
            description="Logs and provider parameter access for the Cloudbeds booking proxy functions",
            statements=statements,
        )

        self.lambda_execution_role = iam.Role(
            self,
            "BookingProxyExecutionRole",
            description="Execution role for the Cloudbeds booking proxy functions",
            assumed_by=iam.ServicePrincipal("lambda.amazonaws.com"),
            managed_policies=[self.lambda_execution_policy],
        )

        applies_to = ["Resource::arn:aws:logs:<AWS::Region>:<AWS::AccountId>:*"]
        if self.parameter_path:
            applies_to.append(f"Resource::arn:aws:ssm:<AWS::Region>:<AWS::AccountId>:parameter{self.parameter_path}/*")

        NagSuppressions.add_resource_suppressions(
            self.lambda_execution_policy.node.default_child,
            [
                {
                    "id": "AwsSolutions-IAM5",
                    "reason": "Lambda functions create their log groups and streams at runtime, and provider credentials are read as one parameter tree (one sub-path per provider slot).",
                    "appliesTo": applies_to,
                }
            ],
        )

    @property
    def role(self) -> iam.Role:
        """Return the execution role."""
        return self.lambda_execution_role

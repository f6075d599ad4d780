#!/usr/bin/env python3

import aws_cdk as cdk
from cdk_nag import AwsSolutionsChecks
from src.stacks.booking_proxy_stack import BookingProxyStack


app = cdk.App()

# Cloudbeds booking proxy stack
BookingProxyStack(
    app,
    "CloudbedsBookingProxy",
    description="Cloudbeds booking proxy for the hotel chat assistant",
)

# Add CDK Nag checks for security and best practices
cdk.Aspects.of(app).add(AwsSolutionsChecks(verbose=True))

app.synth()

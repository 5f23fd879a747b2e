"""
ProcessInboundEmail Lambda

Relays inbound emails received via SES → SNS into Discord.
Parses the MIME message, uploads attachments, and posts the content as
size-bounded batches of embeds to the recipient's channel or DM.

Flow:
    Inbound Email
    → SES Receipt Rule
    → SNS Topic
    → This Lambda
    → Discord channel / DM
"""

from lambdas.process_inbound_email.attachment_handler import (
    AttachmentUploadFailure,
    AttachmentUploadResult,
    upload_attachments,
)
from lambdas.process_inbound_email.batcher import AttachmentBatcher, BlockBatcher
from lambdas.process_inbound_email.chunker import ContentChunker
from lambdas.process_inbound_email.delivery import DeliveryOrchestrator, DeliveryReport
from lambdas.process_inbound_email.email_parser import parse_email
from lambdas.process_inbound_email.handler import lambda_handler
from lambdas.process_inbound_email.text_normalizer import TextNormalizer

__all__ = [
    "AttachmentBatcher",
    "AttachmentUploadFailure",
    "AttachmentUploadResult",
    "BlockBatcher",
    "ContentChunker",
    "DeliveryOrchestrator",
    "DeliveryReport",
    "TextNormalizer",
    "lambda_handler",
    "parse_email",
    "upload_attachments",
]

from invoice_sync.infrastructure.external.queue.sqs_queue import SqsProcessingQueue

__all__ = ["SqsProcessingQueue"]

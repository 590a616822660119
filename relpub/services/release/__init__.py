"""Release publishing services.

Leaves first: ``digests`` and ``manifest`` (hashing and manifest text),
``classify`` (asset labels), ``resolver`` (find or create the release),
``reconcile`` (upload what is missing), ``verify`` (download and check),
and ``pipeline`` composing them.
"""

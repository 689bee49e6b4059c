"""Use-case services operating on a :class:`~smartcafe.app.store.DocumentStore`."""

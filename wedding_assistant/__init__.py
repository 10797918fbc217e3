"""Wedding Assistant: a WhatsApp assistant that answers guests' questions.

Architecture Overview
=====================

Guests message a WhatsApp number registered with Azure Communication
Services.  ACS publishes each message as an Event Grid event, which Event
Grid delivers to this service's ``/webhook`` endpoint.

For every received message the **EventDispatcher** records it in the
conversation store and runs a LangGraph reply pipeline:

1. **retrieve**: Azure AI Search lookup, walking a semantic+vector →
   vector → text cascade so the service works on any search tier.
2. **generate**: Azure OpenAI (via LangChain) answers from the retrieved
   context and the last ten turns of history.
3. **deliver**: the reply goes back through ACS Advanced Messages; only
   delivered replies join the history.

Key Design Decisions
--------------------
- **Failure isolation**: retrieval and generation never raise; delivery and
  per-message failures end up in the display log.  Event Grid only sees an
  error when the body itself cannot be parsed.
- **Shared state**: one lock-guarded ConversationStore per process, built in
  the FastAPI lifespan and passed to the components that need it.
- **Resilience**: search requests retry with exponential backoff; message
  sends never retry so a guest is never messaged twice.

Package Structure
-----------------
- ``wedding_assistant/dispatcher.py``: webhook event classification
- ``wedding_assistant/pipeline.py``: LangGraph reply pipeline
- ``wedding_assistant/retriever.py``: search tier cascade
- ``wedding_assistant/generator.py``: Azure OpenAI reply generation
- ``wedding_assistant/delivery.py``: reply delivery + history bookkeeping
- ``wedding_assistant/config.py``: configuration from environment variables
- ``wedding_assistant/prompts.py``: system prompt
- ``wedding_assistant/server.py``: FastAPI application
- ``wedding_assistant/main.py``: CLI chat interface
- ``wedding_assistant/services/``: HTTP clients, store, metrics
- ``wedding_assistant/api/``: FastAPI routes and Pydantic schemas
"""

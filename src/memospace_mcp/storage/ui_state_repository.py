"""Repository for the singleton UI state document."""
import logging

from pydantic import ValidationError as PydanticValidationError

from memospace_mcp.exceptions import CorruptStoreError
from memospace_mcp.models.schema import GraphViewport, UIState, UIStateDocument, to_document
from memospace_mcp.storage.base import BlobStore, Collection

logger = logging.getLogger(__name__)


class UIStateRepository:
    """Reads and writes UI state through to the store on every call."""

    collection = Collection.UI_STATE

    def __init__(self, store: BlobStore):
        self.store = store
        logger.info("UIStateRepository initialized")

    def load(self) -> UIState:
        """Load the UI state, persisting the default if none was saved."""
        document = self.store.load(self.collection)
        if document is None:
            logger.info("No UI state found, creating default")
            state = UIState()
            self.save(state)
            return state
        try:
            return UIStateDocument.model_validate(document).ui_state
        except PydanticValidationError as e:
            raise CorruptStoreError(
                "Failed to parse UI state",
                collection=self.collection.value,
                original_error=e,
            )

    def save(self, state: UIState) -> None:
        self.store.save(self.collection, to_document(UIStateDocument(ui_state=state)))

    def get_viewport(self) -> GraphViewport:
        """Get the last saved graph viewport (x=0, y=0, zoom=0.8 by default)."""
        return self.load().graph_viewport

    def save_viewport(self, viewport: GraphViewport) -> GraphViewport:
        """Overwrite the graph viewport."""
        state = self.load()
        state.graph_viewport = viewport
        self.save(state)
        logger.debug(f"Saved viewport x={viewport.x} y={viewport.y} zoom={viewport.zoom}")
        return viewport

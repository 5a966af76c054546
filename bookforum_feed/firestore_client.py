import os
import logging
from typing import Optional

from google.cloud.firestore_v1 import AsyncClient, Client

logger = logging.getLogger(__name__)


class FirestoreDB:
    """
    Connection settings plus the Firestore clients built from them.

    * ``client`` is the :class:`google.cloud.firestore_v1.AsyncClient` used for
      reads, paged queries and batch commits.
    * ``listen_client`` is a synchronous :class:`google.cloud.firestore_v1.Client`,
      created on first use, because snapshot listeners (``on_snapshot``) are
      only offered by the synchronous API.

    Both clients point either at a **local emulator** or the real backend.
    """

    def __init__(
        self,
        project_id: str,
        database: Optional[str] = None,
        credentials=None,
        emulator_host: Optional[str] = None,
    ):
        """
        Parameters
        ----------
        project_id :
            Google Cloud project identifier.
        database :
            Optional Firestore **database ID** (defaults to the default database).
        credentials :
            Explicit credentials object; if *None*, the Google SDK default
            credentials chain is used.
        emulator_host :
            ``host:port`` of a running **Firestore emulator**.
        """
        self.project_id = project_id
        self.database = database
        self.credentials = credentials
        self._emulator_host = emulator_host
        self._listen_client: Optional[Client] = None

        self.client: AsyncClient = self._init_client()

    # --------------------------------------------------------------------- #
    # Internal helpers                                                      #
    # --------------------------------------------------------------------- #

    def _export_emulator_host(self) -> None:
        # The Google client libraries route traffic based on this variable.
        if self._emulator_host:
            os.environ["FIRESTORE_EMULATOR_HOST"] = self._emulator_host
        else:
            os.environ.pop("FIRESTORE_EMULATOR_HOST", None)

    def _init_client(self) -> AsyncClient:
        self._export_emulator_host()
        self._listen_client = None
        if self._emulator_host:
            logger.info(f"Using Firestore emulator on {self._emulator_host}")
        return AsyncClient(
            project=self.project_id,
            database=self.database,
            credentials=self.credentials,
        )

    # --------------------------------------------------------------------- #
    # Public utility methods                                                #
    # --------------------------------------------------------------------- #

    @property
    def listen_client(self) -> Client:
        if self._listen_client is None:
            self._export_emulator_host()
            self._listen_client = Client(
                project=self.project_id,
                database=self.database,
                credentials=self.credentials,
            )
        return self._listen_client

    def use_emulator(self, host: str = "localhost:8080"):
        """Switch to a **local emulator** and recreate the clients."""
        self._emulator_host = host
        self.client = self._init_client()
        logger.info(f"Emulator enabled on {host}")

    def clear_emulator(self):
        """Reconnect to the **production** Firestore endpoint."""
        self._emulator_host = None
        self.client = self._init_client()
        logger.info("Emulator disabled – using real Firestore.")

    def mock_firestore_for_tests(self):
        """
        Replace both clients with :class:`unittest.mock.MagicMock` objects so
        unit tests never touch the network.
        """
        from unittest.mock import MagicMock

        self.client = MagicMock()
        self._listen_client = MagicMock()
        logger.info("Firestore clients replaced with MagicMock for unit tests.")

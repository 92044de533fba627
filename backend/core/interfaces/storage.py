# core/interfaces/storage.py
#
# The one contract both storage backends implement (memory and database).
# Records are the *Response schemas from modules.inventory.schemas; inputs are
# the matching *Create / *Update schemas or plain dicts of the same shape.
#
# Failure contract:
#   - missing id on update / reference  -> core.errors.NotFound
#   - delete of a missing id            -> returns False (never raises)
#   - every successful mutation of a server, note, transfer or VM detail
#     appends exactly one Activity before returning, in the same unit of work.
from abc import ABC, abstractmethod
from typing import Optional


class InventoryStorage(ABC):
    """What the HTTP layer (and any other caller) needs from inventory storage."""

    backend_name = "abstract"

    # --- users ---
    @abstractmethod
    def get_all_users(self) -> list: ...

    @abstractmethod
    def get_user_by_id(self, user_id: int): ...

    @abstractmethod
    def get_user_by_username(self, username: str): ...

    @abstractmethod
    def create_user(self, data): ...

    @abstractmethod
    def update_user(self, user_id: int, data): ...

    @abstractmethod
    def delete_user(self, user_id: int, requested_by: Optional[int] = None) -> bool: ...

    @abstractmethod
    def verify_user_password(self, username: str, password: str): ...

    # --- locations ---
    @abstractmethod
    def get_all_locations(self) -> list: ...

    @abstractmethod
    def get_location_by_id(self, location_id: int): ...

    @abstractmethod
    def create_location(self, data): ...

    @abstractmethod
    def update_location(self, location_id: int, data): ...

    @abstractmethod
    def delete_location(self, location_id: int) -> bool: ...

    @abstractmethod
    def get_servers_by_location(self, location_id: int) -> list: ...

    @abstractmethod
    def get_location_summary(self) -> list: ...

    # --- server models ---
    @abstractmethod
    def get_all_server_models(self) -> list: ...

    @abstractmethod
    def get_server_model_by_id(self, model_id: int): ...

    @abstractmethod
    def create_server_model(self, data): ...

    @abstractmethod
    def update_server_model(self, model_id: int, data): ...

    @abstractmethod
    def delete_server_model(self, model_id: int) -> bool: ...

    # --- servers ---
    @abstractmethod
    def get_all_servers(self) -> list: ...

    @abstractmethod
    def get_server_by_id(self, server_pk: int): ...

    @abstractmethod
    def get_server_by_server_id(self, server_id: str): ...

    @abstractmethod
    def create_server(self, data, user_id: Optional[int] = None): ...

    @abstractmethod
    def create_batch_servers(
        self, model_id: int, location_id: int, quantity: int, status, user_id: Optional[int] = None
    ) -> list: ...

    @abstractmethod
    def update_server(self, server_pk: int, data, user_id: Optional[int] = None): ...

    @abstractmethod
    def delete_server(self, server_pk: int, user_id: Optional[int] = None) -> bool: ...

    # --- notes ---
    @abstractmethod
    def get_server_notes(self, server_pk: int, include_deleted: bool = False) -> list: ...

    @abstractmethod
    def get_server_note(self, note_id: int): ...

    @abstractmethod
    def add_server_note(self, data): ...

    @abstractmethod
    def update_server_note(self, note_id: int, data): ...

    @abstractmethod
    def delete_server_note(self, note_id: int, user_id: Optional[int] = None) -> bool: ...

    # --- transfers ---
    @abstractmethod
    def get_server_transfers(self, server_pk: int) -> list: ...

    @abstractmethod
    def get_all_transfers(self) -> list: ...

    @abstractmethod
    def create_transfer(self, data): ...

    # --- virtual machine details ---
    @abstractmethod
    def get_server_details(self, server_pk: int) -> list: ...

    @abstractmethod
    def get_server_detail(self, detail_id: int): ...

    @abstractmethod
    def add_server_detail(self, data, user_id: Optional[int] = None): ...

    @abstractmethod
    def update_server_detail(self, detail_id: int, data, user_id: Optional[int] = None): ...

    @abstractmethod
    def delete_server_detail(self, detail_id: int, user_id: Optional[int] = None) -> bool: ...

    # --- activities ---
    @abstractmethod
    def get_all_activities(self, limit: Optional[int] = None) -> list: ...

    @abstractmethod
    def get_server_activities(self, server_pk: int) -> list: ...

    @abstractmethod
    def add_activity(self, data): ...

    # --- aggregates / health ---
    @abstractmethod
    def get_server_stats(self): ...

    @abstractmethod
    def ping(self) -> bool: ...

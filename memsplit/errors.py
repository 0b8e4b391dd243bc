class MemsplitError(Exception):
    """Base class for errors raised by memsplit."""


class MemoryNotFoundError(MemsplitError):

    def __init__(self, memory_id: str):
        super().__init__(f"Memory not found: {memory_id}")
        self.memory_id = memory_id


class FolderNotFoundError(MemsplitError):

    def __init__(self, folder_id: str):
        super().__init__(f"Folder not found: {folder_id}")
        self.folder_id = folder_id


class ConversationNotFoundError(MemsplitError):

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation not found: {conversation_id}")
        self.conversation_id = conversation_id

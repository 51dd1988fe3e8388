# Collaborator implementations: local storage and ledger RPC

"""Answer board for the StackIt question page: optimistic votes and answers
reconciled against the remote question API."""

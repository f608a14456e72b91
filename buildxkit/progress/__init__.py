"""Progress records, the writer interface and writers that prefix names or reset times."""
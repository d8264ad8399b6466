SCHEMA_SQL = r"""
-- Every logical collection (products, materialInward, purchases, materialsOut,
-- sales, enquiries, centers) is stored as JSON documents in one table.
CREATE TABLE IF NOT EXISTS documents (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  collection TEXT NOT NULL,
  doc_id TEXT NOT NULL,
  body TEXT NOT NULL,                    -- JSON object
  created_at TEXT NOT NULL,              -- ISO datetime
  updated_at TEXT,
  UNIQUE (collection, doc_id)
);

CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection, doc_id);
"""

"""Export batch bookkeeping (SQLAlchemy)."""

from sqlalchemy.orm import relationship
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from database import Base


class User(Base):
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(Text, unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)  # bcrypt hash
    full_name = Column(Text, nullable=True)
    email = Column(Text, nullable=True)
    skills = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    job_applications = relationship("JobApplication", back_populates="owner")
    documents = relationship("Document", back_populates="owner")
    interviews = relationship("Interview", back_populates="owner")


class JobApplication(Base):
    __tablename__ = "job_applications"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    company = Column(Text, nullable=False)
    position = Column(Text, nullable=False)
    location = Column(Text, nullable=True)
    salary = Column(Text, nullable=True)
    job_type = Column(Text, nullable=True)
    work_mode = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(50), nullable=False, default="applied")
    # Soft references to documents, existence is not enforced
    resume_id = Column(Integer, nullable=True)
    cover_id = Column(Integer, nullable=True)
    url = Column(Text, nullable=True)
    contact_info = Column(Text, nullable=True)
    applied_date = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    owner = relationship("User", back_populates="job_applications")
    interviews = relationship(
        "Interview", back_populates="job_application", cascade="all, delete"
    )


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    type = Column(Text, nullable=False)  # resume, cover_letter, other
    description = Column(Text, nullable=True)
    content = Column(Text, nullable=False)
    usage_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    owner = relationship("User", back_populates="documents")


class Interview(Base):
    __tablename__ = "interviews"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    job_application_id = Column(
        Integer, ForeignKey("job_applications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(Text, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    notes = Column(Text, nullable=True)
    completed = Column(Boolean, nullable=False, default=False)
    feedback = Column(Text, nullable=True)

    owner = relationship("User", back_populates="interviews")
    job_application = relationship("JobApplication", back_populates="interviews")

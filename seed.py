from confess_api.database import SessionLocal, engine, Base
from confess_api.models import Confession, PushOutbox
from confess_api.services import ConfessionService

# Create tables
Base.metadata.create_all(bind=engine)

db = SessionLocal()

# Clear existing data
db.query(PushOutbox).delete()
db.query(Confession).delete()
db.commit()

service = ConfessionService(db)

# Sample submissions
submissions = [
    ("Mình đã thích bạn cùng lớp suốt ba học kỳ mà chưa dám nói.", "device_001", "token_001"),
    ("Hôm qua mình ngủ quên trong thư viện tới lúc đóng cửa.", "device_002", "token_002"),
    ("Cảm ơn anh bảo vệ đã cho mình mượn áo mưa hôm trước!", "device_003", "token_003"),
    ("Lab đêm qua cháy deadline, nhưng vẫn vui.", "device_001", "token_001"),
    ("Ai nhặt được thẻ sinh viên của mình ở căng tin không?", "device_004", "token_004"),
    ("Spam spam spam", "device_005", "token_005"),
]

confessions = [
    service.create(Confession(content=content, sender=sender, push_id=push_id))
    for content, sender, push_id in submissions
]

# Moderate a few of them
service.approve(confessions[0].id, approver_id=1)
service.approve(confessions[2].id, approver_id=1)
service.reject(confessions[5].id, approver_id=2, reason="Spam")

# Seeding should not leave notifications waiting for real devices
db.query(PushOutbox).delete()
db.commit()

overview = service.fetch_overview()
print("Database seeded successfully!")
print(f"  - {overview.total} confessions")
print(f"  - {overview.pending} pending")
print(f"  - {overview.rejected} rejected")

db.close()

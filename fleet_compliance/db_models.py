from datetime import datetime, timezone
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import declared_attr


db = SQLAlchemy()


def utc_now():
    return datetime.now(timezone.utc)


class Franchise(db.Model):
    __tablename__ = 'franchise'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    timezone = db.Column(db.String(64))  # IANA name, e.g. "America/Los_Angeles"
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    def __repr__(self):
        return f"<Franchise {self.id} {self.name} ({self.timezone})>"


class Vehicle(db.Model):
    __tablename__ = 'vehicle'
    __table_args__ = (
        db.Index('ix_vehicle_franchise_status', 'franchise_id', 'status'),
    )

    id = db.Column(db.Integer, primary_key=True)
    franchise_id = db.Column(db.Integer, db.ForeignKey('franchise.id'), nullable=False, index=True)
    vehicle_number = db.Column(db.String(64), nullable=False)   # display number painted on the truck
    status = db.Column(db.String(32), nullable=False, default="active")  # active | maintenance | retired
    current_odometer = db.Column(db.Integer)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    def __repr__(self):
        return f"<Vehicle {self.vehicle_number} | {self.status} | {self.current_odometer}>"


class VehicleIssue(db.Model):
    __tablename__ = 'vehicle_issue'

    id = db.Column(db.Integer, primary_key=True)
    franchise_id = db.Column(db.Integer, db.ForeignKey('franchise.id'), nullable=False, index=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicle.id'), nullable=False, index=True)
    description = db.Column(db.Text)
    status = db.Column(db.String(32), default="open")       # open | resolved | ...
    severity = db.Column(db.String(16), default="medium")   # low | medium | high
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    resolved_at = db.Column(db.DateTime(timezone=True))

    def __repr__(self):
        return f"<VehicleIssue {self.id} vehicle={self.vehicle_id} {self.status}>"


class DailyLog(db.Model):
    """End-of-day log; one per vehicle per calendar day."""
    __tablename__ = 'daily_log'
    __table_args__ = (
        UniqueConstraint('vehicle_id', 'log_date', name='uq_daily_log_vehicle_date'),
    )

    id = db.Column(db.Integer, primary_key=True)
    franchise_id = db.Column(db.Integer, db.ForeignKey('franchise.id'), nullable=False, index=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicle.id'), nullable=False, index=True)
    driver_id = db.Column(db.String(64))
    log_date = db.Column(db.Date, nullable=False, index=True)
    start_odometer = db.Column(db.Integer)
    end_odometer = db.Column(db.Integer)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)


class ChecklistMixin:
    """Columns shared by the daily / weekly / monthly checklist tables."""

    id = db.Column(db.Integer, primary_key=True)
    driver_id = db.Column(db.String(64))
    checklist_date = db.Column(db.Date, nullable=False, index=True)
    overall_status = db.Column(db.String(32), default="pending")  # pass | service_soon | fail | pending
    notes = db.Column(db.Text)

    @declared_attr
    def franchise_id(cls):
        return db.Column(db.Integer, db.ForeignKey('franchise.id'), nullable=False, index=True)

    @declared_attr
    def vehicle_id(cls):
        return db.Column(db.Integer, db.ForeignKey('vehicle.id'), nullable=False, index=True)

    @declared_attr
    def created_at(cls):
        return db.Column(db.DateTime(timezone=True), default=utc_now)

    @declared_attr
    def __table_args__(cls):
        return (
            UniqueConstraint('vehicle_id', 'checklist_date', name=f'uq_{cls.__tablename__}_vehicle_date'),
        )

    def __repr__(self):
        return f"<{type(self).__name__} vehicle={self.vehicle_id} {self.checklist_date} {self.overall_status}>"


class DailyChecklist(ChecklistMixin, db.Model):
    __tablename__ = 'daily_checklist'


class WeeklyChecklist(ChecklistMixin, db.Model):
    __tablename__ = 'weekly_checklist'


class MonthlyChecklist(ChecklistMixin, db.Model):
    __tablename__ = 'monthly_checklist'


CHECKLIST_MODELS = {
    "daily": DailyChecklist,
    "weekly": WeeklyChecklist,
    "monthly": MonthlyChecklist,
}


class ChecklistSettings(db.Model):
    """Cadence policy: target interval for a weekly or monthly checklist."""
    __tablename__ = 'checklist_settings'
    __table_args__ = (
        UniqueConstraint('franchise_id', 'checklist_type', name='uq_checklist_settings_franchise_type'),
        db.CheckConstraint('interval_days > 0', name='ck_checklist_settings_interval_pos'),
    )

    id = db.Column(db.Integer, primary_key=True)
    franchise_id = db.Column(db.Integer, db.ForeignKey('franchise.id'), nullable=False)
    checklist_type = db.Column(db.String(16), nullable=False)  # weekly | monthly
    interval_days = db.Column(db.Integer, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), default=utc_now, onupdate=utc_now)


class ScheduledMaintenance(db.Model):
    __tablename__ = 'scheduled_maintenance'
    __table_args__ = (
        db.CheckConstraint(
            'due_date IS NOT NULL OR due_odometer IS NOT NULL',
            name='ck_scheduled_maintenance_has_trigger',
        ),
        db.Index('ix_sm_franchise_completed', 'franchise_id', 'completed'),
    )

    id = db.Column(db.Integer, primary_key=True)
    franchise_id = db.Column(db.Integer, db.ForeignKey('franchise.id'), nullable=False)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicle.id'), nullable=False, index=True)
    maintenance_type = db.Column(db.String(100), nullable=False)   # e.g. "Oil change"
    description = db.Column(db.Text)
    due_date = db.Column(db.Date)
    due_odometer = db.Column(db.Integer)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)

    vehicle = db.relationship("Vehicle")

    def __repr__(self):
        return f"<ScheduledMaintenance {self.maintenance_type} vehicle={self.vehicle_id} date={self.due_date} odo={self.due_odometer}>"


class PushSubscription(db.Model):
    __tablename__ = 'push_subscription'
    __table_args__ = (
        db.Index('ix_push_sub_franchise_user_active', 'franchise_id', 'user_id', 'is_active'),
    )

    id = db.Column(db.Integer, primary_key=True)
    franchise_id = db.Column(db.Integer, db.ForeignKey('franchise.id'), nullable=False)
    user_id = db.Column(db.String(64), nullable=False)
    endpoint = db.Column(db.String(1024), nullable=False)
    p256dh = db.Column(db.String(255), nullable=False)
    auth = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    deactivated_at = db.Column(db.DateTime(timezone=True))

    def __repr__(self):
        return f"<PushSubscription {self.id} user={self.user_id} active={self.is_active}>"


class NotificationRun(db.Model):
    """Idempotency key for one (franchise, day, run type) reminder batch."""
    __tablename__ = 'notification_run'
    __table_args__ = (
        UniqueConstraint('franchise_id', 'run_date', 'run_type', name='uq_notification_run_key'),
    )

    id = db.Column(db.Integer, primary_key=True)
    franchise_id = db.Column(db.Integer, db.ForeignKey('franchise.id'), nullable=False)
    run_date = db.Column(db.Date, nullable=False)
    run_type = db.Column(db.String(32), nullable=False)   # pre_trip_9am | end_day_6pm | eod_missed
    status = db.Column(db.String(16), nullable=False, default="claimed")  # claimed | completed
    reason = db.Column(db.String(32))
    sent_count = db.Column(db.Integer, nullable=False, default=0)
    failed_count = db.Column(db.Integer, nullable=False, default=0)
    deactivated_count = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), default=utc_now)
    completed_at = db.Column(db.DateTime(timezone=True))

    def __repr__(self):
        return f"<NotificationRun f={self.franchise_id} {self.run_date} {self.run_type} {self.status}>"


class VehicleAssignment(db.Model):
    __tablename__ = 'vehicle_assignment'

    id = db.Column(db.Integer, primary_key=True)
    franchise_id = db.Column(db.Integer, db.ForeignKey('franchise.id'), nullable=False, index=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicle.id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)


class FranchiseMembership(db.Model):
    __tablename__ = 'franchise_membership'
    __table_args__ = (
        UniqueConstraint('franchise_id', 'user_id', name='uq_franchise_membership'),
    )

    id = db.Column(db.Integer, primary_key=True)
    franchise_id = db.Column(db.Integer, db.ForeignKey('franchise.id'), nullable=False, index=True)
    user_id = db.Column(db.String(64), nullable=False)
    role = db.Column(db.String(32), nullable=False, default="driver")  # owner | manager | super_admin | admin | driver
    is_active = db.Column(db.Boolean, nullable=False, default=True)


if __name__ == '__main__':
    from fleet_compliance import create_app
    app = create_app()

    with app.app_context():
        db.create_all()
        print("Database tables created.")

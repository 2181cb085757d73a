"""Factory Boy factories for ITAM test data generation."""

import factory
from factory.django import DjangoModelFactory


class UserFactory(DjangoModelFactory):
    """Factory for CustomUser model."""

    class Meta:
        model = "accounts.CustomUser"
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    display_name = factory.Faker("name")
    employee_id = factory.Sequence(lambda n: f"E{n:05d}")
    role = "USER"
    is_active = True

    @factory.post_generation
    def password(self, create, extracted, **kwargs):
        pwd = extracted or "testpass123!"
        self.set_password(pwd)
        if create:
            self.save(update_fields=["password"])


class LocationFactory(DjangoModelFactory):
    """Factory for Location model."""

    class Meta:
        model = "assets.Location"
        django_get_or_create = ("name",)

    name = factory.Sequence(lambda n: f"Location {n}")
    description = factory.Faker("sentence")


class AssetFactory(DjangoModelFactory):
    """Factory for Asset model.

    Leaves asset_number blank so Asset.save() draws it from the type's
    sequence. Pass ``state`` and ``assigned_user`` together for the
    assigned states.
    """

    class Meta:
        model = "assets.Asset"

    type = "LAPTOP"
    state = "AVAILABLE"
    serial_number = factory.Sequence(lambda n: f"SN-{n:06d}")
    description = factory.Sequence(lambda n: f"Test laptop {n}")
    location = factory.SubFactory(LocationFactory)


class AssignmentEventFactory(DjangoModelFactory):
    """Factory for AssignmentEvent model."""

    class Meta:
        model = "assets.AssignmentEvent"

    asset = factory.SubFactory(AssetFactory)
    action = "transition"
    previous_state = "AVAILABLE"
    new_state = "BUILDING"

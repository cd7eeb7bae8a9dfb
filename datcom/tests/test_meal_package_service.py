import pytest

from ..core.exceptions import PackageInUseError, PackageNotFoundError
from ..schemas.package import MealPackageCreateRequest, MealPackageUpdateRequest
from ..services.meal_package_service import MealPackageService
from ..services.purchase_service import PurchaseService


class TestMealPackageService:
    """套餐目录测试"""

    def test_create_and_list(self, test_db, admin):
        service = MealPackageService(test_db)
        service.create_package(MealPackageCreateRequest(name="Gói 20", turns=20, price=700000, valid_days=45),
                               actor_id=admin.id)
        service.create_package(MealPackageCreateRequest(name="Gói 10", turns=10, price=350000, valid_days=30,
                                                        is_active=False), actor_id=admin.id)

        assert [p.name for p in service.list_packages()] == ["Gói 10", "Gói 20"]
        assert [p.name for p in service.list_packages(is_active=True)] == ["Gói 20"]

    def test_update_unreferenced_template(self, test_db, admin, make_template):
        service = MealPackageService(test_db)
        package_id = make_template(turns=10)

        updated = service.update_package(package_id, MealPackageUpdateRequest(turns=12, package_type="no-rice"),
                                         actor_id=admin.id)
        assert updated.turns == 12
        assert updated.package_type == "no-rice"

    def test_referenced_template_is_immutable(self, test_db, clock, user, admin, make_template, notifier):
        service = MealPackageService(test_db)
        package_id = make_template(price=100)
        PurchaseService(test_db, clock, notifier).create_purchase_request(user.id, package_id)

        with pytest.raises(PackageInUseError):
            service.update_package(package_id, MealPackageUpdateRequest(price=200), actor_id=admin.id)
        with pytest.raises(PackageInUseError):
            service.delete_package(package_id, actor_id=admin.id)

        toggled = service.update_package(package_id, MealPackageUpdateRequest(is_active=False), actor_id=admin.id)
        assert toggled.is_active is False
        assert toggled.price == 100

    def test_delete_unreferenced_template(self, test_db, admin, make_template):
        service = MealPackageService(test_db)
        package_id = make_template()
        service.delete_package(package_id, actor_id=admin.id)

        with pytest.raises(PackageNotFoundError):
            service.get_package(package_id)

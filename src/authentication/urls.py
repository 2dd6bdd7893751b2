"""URL patterns for authentication and user administration endpoints."""

from django.urls import path

from .views import (
    AvatarView,
    DemoteUserView,
    ForgotPasswordView,
    GoogleLoginView,
    LoginView,
    LogoutView,
    MeView,
    PromoteUserView,
    RefreshView,
    RegisterView,
    ResetPasswordView,
    UserDetailView,
    UserListView,
    VerifyEmailView,
)

urlpatterns = [
    path("register", RegisterView.as_view(), name="auth-register"),
    path("login", LoginView.as_view(), name="auth-login"),
    path("google", GoogleLoginView.as_view(), name="auth-google"),
    path("refresh", RefreshView.as_view(), name="auth-refresh"),
    path("logout", LogoutView.as_view(), name="auth-logout"),
    path("verifyemail/<str:token>", VerifyEmailView.as_view(), name="auth-verify-email"),
    path("forgotpassword", ForgotPasswordView.as_view(), name="auth-forgot-password"),
    path("resetpassword/<str:token>", ResetPasswordView.as_view(), name="auth-reset-password"),
    path("me", MeView.as_view(), name="auth-me"),
    path("me/avatar", AvatarView.as_view(), name="auth-me-avatar"),
    path("users", UserListView.as_view(), name="auth-users"),
    path("users/<str:pk>", UserDetailView.as_view(), name="auth-user-detail"),
    path("users/<str:pk>/promote", PromoteUserView.as_view(), name="auth-user-promote"),
    path("users/<str:pk>/demote", DemoteUserView.as_view(), name="auth-user-demote"),
]
